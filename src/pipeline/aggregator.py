"""
年度別集計モジュール

1年度分のレコードから、府省庁別予算・府省庁別事業Top10・事業別支出先Top20 を構築する
"""
import logging
from typing import Dict, List, Optional

import pandas as pd

from config import TOP_PROJECTS_PER_MINISTRY, TOP_RECIPIENTS_PER_PROJECT
from src.models.schema import (
    LinkMetadata,
    MinistryBudget,
    MinistryProjects,
    NodeMetadata,
    ProjectBudget,
    ProjectExpenditures,
    RecipientAmount,
    SankeyGraph,
    SankeyLink,
    SankeyNode,
)

logger = logging.getLogger(__name__)


def filter_budget_year(budget: pd.DataFrame, year: int) -> pd.DataFrame:
    """予算年度が対象年度のレコードのみを抽出"""
    return budget[budget['budget_year'] == year]


def summarize_ministries(budget: pd.DataFrame, year: int) -> List[MinistryBudget]:
    """
    府省庁ごとに当初予算を集約

    金額の降順（同額の場合は出現順）

    Args:
        budget: 予算レコード
        year: 対象年度

    Returns:
        府省庁別予算のリスト
    """
    current = filter_budget_year(budget, year)
    current = current[current['ministry'].notna()]
    if current.empty:
        return []

    sums = current.groupby('ministry', sort=False)['budget'].sum()
    sums = sums.sort_values(ascending=False, kind='stable')

    return [MinistryBudget(name=name, budget=int(amount)) for name, amount in sums.items()]


def build_ministry_sankey(ministries: List[MinistryBudget], year: int) -> SankeyGraph:
    """
    サンキーデータを生成（年度予算合計 → 府省庁ごとの予算）

    Args:
        ministries: 府省庁別予算（表示順）
        year: 対象年度

    Returns:
        SankeyGraph
    """
    total_budget = sum(ministry.budget for ministry in ministries)

    root = SankeyNode(
        id='total_budget',
        name=f"{year}年度予算",
        type='total',
        metadata=NodeMetadata(budget=total_budget),
    )
    nodes = [root]
    links = []

    for index, ministry in enumerate(ministries):
        node = SankeyNode(
            id=f"ministry_{index}",
            name=ministry.name,
            type='ministry',
            metadata=NodeMetadata(ministry=ministry.name, budget=ministry.budget),
        )
        nodes.append(node)
        links.append(SankeyLink(source=root.id, target=node.id, value=ministry.budget))

    return SankeyGraph(nodes=nodes, links=links)


def build_ministry_projects(
    budget: pd.DataFrame, year: int, ministries: List[MinistryBudget]
) -> Dict[str, MinistryProjects]:
    """
    府省庁ごとの事業データを生成（Top10 + その他）

    事業は年度内の予算事業IDで識別し、事業名は表示用に保持する。
    予算事業IDの無い行はその他に含め、Top10 + その他 が府省庁の予算合計と一致するようにする

    Args:
        budget: 予算レコード
        year: 対象年度
        ministries: 府省庁別予算（出力順を決める）

    Returns:
        府省庁名 → MinistryProjects
    """
    current = filter_budget_year(budget, year)
    current = current[current['ministry'].notna()]
    if current.empty:
        return {}

    identified = current[current['project_id'].notna()]
    unidentified_totals = (
        current[current['project_id'].isna()].groupby('ministry', sort=False)['budget'].sum()
    )

    if identified.empty:
        grouped = pd.DataFrame(columns=['ministry', 'project_id', 'name', 'budget'])
    else:
        grouped = (
            identified.groupby(['ministry', 'project_id'], sort=False)
            .agg(name=('project_name', 'first'), budget=('budget', 'sum'))
            .reset_index()
        )

    result = {}
    for ministry in ministries:
        projects = grouped[grouped['ministry'] == ministry.name]
        unidentified = int(unidentified_totals.get(ministry.name, 0))
        if projects.empty and not unidentified:
            continue
        projects = projects.sort_values('budget', ascending=False, kind='stable')

        top = projects.head(TOP_PROJECTS_PER_MINISTRY)
        others = projects.iloc[TOP_PROJECTS_PER_MINISTRY:]

        result[ministry.name] = MinistryProjects(
            top10=[
                ProjectBudget(
                    project_id=int(row.project_id),
                    name=row.name if isinstance(row.name, str) else '',
                    budget=int(row.budget),
                )
                for row in top.itertuples(index=False)
            ],
            others_total=int(others['budget'].sum()) + unidentified,
            total_projects=len(projects),
        )

    return result


def top_project_ids(ministry_projects: Dict[str, MinistryProjects]) -> List[int]:
    """全府省庁のTop10事業の予算事業ID（重複なし、府省庁順・順位順）"""
    project_ids = []
    seen = set()
    for rollup in ministry_projects.values():
        for project in rollup.top10:
            if project.project_id not in seen:
                seen.add(project.project_id)
                project_ids.append(project.project_id)
    return project_ids


def build_project_expenditures(
    expenditures: pd.DataFrame, year: int, ministry_projects: Dict[str, MinistryProjects]
) -> Dict[int, ProjectExpenditures]:
    """
    事業ごとの支出先データを生成（Top20 + その他 + 支出先不明）

    対象はいずれかの府省庁でTop10に入った事業のみ。
    同じ支出先名の支出額は合算し、予算のうち支出先で説明できない額を不明額とする

    Args:
        expenditures: 支出先レコード
        year: 対象年度
        ministry_projects: 府省庁別事業Top10

    Returns:
        予算事業ID → ProjectExpenditures
    """
    budgets: Dict[int, int] = {}
    names: Dict[int, str] = {}
    for rollup in ministry_projects.values():
        for project in rollup.top10:
            budgets[project.project_id] = budgets.get(project.project_id, 0) + project.budget
            names.setdefault(project.project_id, project.name)

    recipient_totals: Dict[int, pd.Series] = {}
    if not expenditures.empty and budgets:
        rows = expenditures[
            (expenditures['fiscal_year'] == year)
            & expenditures['project_id'].isin(list(budgets))
            & expenditures['recipient'].notna()
        ]
        for project_id, project_rows in rows.groupby('project_id', sort=False):
            totals = project_rows.groupby('recipient', sort=False)['amount'].sum()
            recipient_totals[int(project_id)] = totals.sort_values(ascending=False, kind='stable')

    result = {}
    for project_id in top_project_ids(ministry_projects):
        totals = recipient_totals.get(project_id)
        if totals is None:
            totals = pd.Series(dtype='int64')

        top = totals.head(TOP_RECIPIENTS_PER_PROJECT)
        total_expenditure = int(totals.sum())
        budget = budgets[project_id]

        result[project_id] = ProjectExpenditures(
            project_id=project_id,
            project_name=names[project_id],
            budget=budget,
            top20_expenditures=[
                RecipientAmount(name=name, amount=int(amount)) for name, amount in top.items()
            ],
            others_total=int(totals.iloc[TOP_RECIPIENTS_PER_PROJECT:].sum()),
            total_expenditure_amount=total_expenditure,
            unknown_amount=max(0, budget - total_expenditure),
        )

    return result


def build_project_sankey(rollup: ProjectExpenditures) -> SankeyGraph:
    """
    事業 → 支出先のサンキーデータを生成

    表示順は Top20 → その他 → 支出先不明

    Args:
        rollup: 事業の支出先データ

    Returns:
        SankeyGraph
    """
    project = SankeyNode(
        id=f"project_{rollup.project_id}",
        name=rollup.project_name,
        type='project',
        metadata=NodeMetadata(project_id=rollup.project_id, budget=rollup.budget),
    )
    nodes = [project]
    links = []

    def add(node: SankeyNode, value: int):
        nodes.append(node)
        links.append(SankeyLink(source=project.id, target=node.id, value=value))

    for index, recipient in enumerate(rollup.top20_expenditures):
        add(
            SankeyNode(
                id=f"expenditure_{index}",
                name=recipient.name,
                type='expenditure',
                metadata=NodeMetadata(amount=recipient.amount),
            ),
            recipient.amount,
        )

    if rollup.others_total > 0:
        add(
            SankeyNode(
                id='others',
                name='その他',
                type='others',
                metadata=NodeMetadata(amount=rollup.others_total),
            ),
            rollup.others_total,
        )

    if rollup.unknown_amount > 0:
        add(
            SankeyNode(
                id='unknown',
                name='支出先不明',
                type='unknown',
                metadata=NodeMetadata(amount=rollup.unknown_amount),
            ),
            rollup.unknown_amount,
        )

    return SankeyGraph(nodes=nodes, links=links)


def _first(values: pd.Series) -> Optional[object]:
    """最初の空でない値"""
    values = values.dropna()
    return values.iloc[0] if len(values) else None


def build_block_sankey(connections: pd.DataFrame, expenditures: pd.DataFrame) -> SankeyGraph:
    """
    1事業分の支出ブロックのつながりからサンキーデータを生成

    担当組織 → 支出先ブロック → (再委託先ブロック) → 支出先 の流れを表す

    Args:
        connections: 1事業分の支出ブロックのつながり
        expenditures: 1事業分の支出先レコード

    Returns:
        SankeyGraph
    """
    nodes: Dict[str, SankeyNode] = {}

    def add_block(block_id: str, name: str, node_type: str, ministry: Optional[str]):
        if block_id not in nodes:
            nodes[block_id] = SankeyNode(
                id=block_id,
                name=name,
                type=node_type,
                metadata=NodeMetadata(ministry=ministry),
            )

    for row in connections.itertuples(index=False):
        if row.target_block is None:
            continue
        if row.source_block is None:
            source_id = 'organization'
            source_name = row.ministry or '担当組織'
        else:
            source_id = f"block_{row.source_block}"
            source_name = row.source_block_name or row.source_block
        add_block(
            source_id, source_name,
            'ministry' if row.from_organization else 'block',
            row.ministry,
        )
        add_block(
            f"block_{row.target_block}", row.target_block_name or row.target_block,
            'block', row.ministry,
        )

    recipients = expenditures[expenditures['recipient'].notna() & expenditures['block_id'].notna()]
    block_totals: Dict[str, int] = {}
    links: List[SankeyLink] = []

    if not recipients.empty:
        grouped = recipients.groupby(['block_id', 'recipient'], sort=False)
        for index, ((block, recipient), rows) in enumerate(grouped):
            amount = int(rows['amount'].sum())
            block_id = f"block_{block}"
            # 同じブロックの支出先合計がブロック間リンクの金額になる
            block_totals[block_id] = block_totals.get(block_id, 0) + amount
            if amount <= 0 or block_id not in nodes:
                continue

            recipient_id = f"recipient_{index}"
            corporate_number = _first(rows['corporate_number'])
            nodes[recipient_id] = SankeyNode(
                id=recipient_id,
                name=recipient,
                type='recipient',
                metadata=NodeMetadata(amount=amount, corporate_number=corporate_number),
            )
            links.append(SankeyLink(
                source=block_id,
                target=recipient_id,
                value=amount,
                metadata=LinkMetadata(
                    contract_type=_first(rows['contract_type']),
                    bidders=_first(rows['bidders']),
                    fall_rate=_first(rows['fall_rate']),
                    role=_first(rows['role']),
                ),
            ))

    block_links = []
    seen = set()
    for row in connections.itertuples(index=False):
        if row.target_block is None:
            continue
        source_id = 'organization' if row.source_block is None else f"block_{row.source_block}"
        target_id = f"block_{row.target_block}"
        amount = block_totals.get(target_id, 0)
        if amount > 0 and (source_id, target_id) not in seen:
            seen.add((source_id, target_id))
            block_links.append(SankeyLink(source=source_id, target=target_id, value=amount))

    return SankeyGraph(nodes=list(nodes.values()), links=block_links + links)


def build_block_sankeys(
    connections: pd.DataFrame, expenditures: pd.DataFrame, year: int, project_ids: List[int]
) -> Dict[int, SankeyGraph]:
    """
    Top10事業ごとの支出ブロックのサンキーデータを生成

    Args:
        connections: 支出ブロックのつながり（存在しない年度は空）
        expenditures: 支出先レコード
        year: 対象年度
        project_ids: 対象の予算事業ID

    Returns:
        予算事業ID → SankeyGraph（つながりデータのある事業のみ）
    """
    if connections.empty:
        return {}

    current = expenditures[expenditures['fiscal_year'] == year] if not expenditures.empty else expenditures

    result = {}
    for project_id in project_ids:
        project_connections = connections[connections['project_id'] == project_id]
        if project_connections.empty:
            continue
        if current.empty:
            project_expenditures = current
        else:
            project_expenditures = current[current['project_id'] == project_id]
        result[project_id] = build_block_sankey(project_connections, project_expenditures)

    logger.info(f"  Built block flows for {len(result)} projects")
    return result
