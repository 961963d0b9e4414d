"""
出力JSONのスキーマ定義

フロントエンドが読み込む各JSONファイルの構造を pydantic モデルで定義する
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NodeType = Literal[
    "total", "ministry", "block", "recipient", "project", "others", "expenditure", "unknown"
]


class CamelModel(BaseModel):
    """キーを camelCase で出力する基底モデル"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- サンキー図 ---


class NodeMetadata(CamelModel):
    project_id: Optional[int] = None
    budget: Optional[int] = None
    execution: Optional[int] = None
    ministry: Optional[str] = None
    corporate_number: Optional[str] = None
    amount: Optional[int] = None


class LinkMetadata(CamelModel):
    contract_type: Optional[str] = None
    bidders: Optional[int] = None
    fall_rate: Optional[float] = None
    role: Optional[str] = None


class SankeyNode(CamelModel):
    id: str = Field(..., description="ノードID（1つのグラフ内で一意）")
    name: str = Field(..., description="表示名")
    type: NodeType
    metadata: Optional[NodeMetadata] = None


class SankeyLink(CamelModel):
    source: str = Field(..., description="流出元ノードID")
    target: str = Field(..., description="流入先ノードID")
    value: int = Field(..., ge=0, description="金額（円）")
    metadata: Optional[LinkMetadata] = None


class SankeyGraph(CamelModel):
    nodes: List[SankeyNode] = Field(default_factory=list)
    links: List[SankeyLink] = Field(default_factory=list)


# --- 年度別データ ---


class YearStatistics(CamelModel):
    """年度の統計情報（statistics.json）"""

    total_budget: int = Field(..., ge=0)
    total_execution: int = Field(..., ge=0)
    average_execution_rate: float = Field(..., ge=0, le=1.0)
    event_count: int = Field(..., ge=0, description="予算事業IDの数")
    ministry_count: int = Field(..., ge=0)


class MinistryBudget(CamelModel):
    name: str
    budget: int = Field(..., ge=0)


class ProjectBudget(CamelModel):
    project_id: int
    name: str
    budget: int = Field(..., ge=0)


class MinistryProjects(CamelModel):
    """府省庁の事業Top10とその他（ministry-projects.json）"""

    top10: List[ProjectBudget] = Field(default_factory=list)
    others_total: int = Field(0, ge=0)
    total_projects: int = Field(0, ge=0)


class RecipientAmount(CamelModel):
    name: str
    amount: int = Field(..., ge=0)


class ProjectExpenditures(CamelModel):
    """事業の支出先Top20とその他・支出先不明（project-expenditures.json）"""

    project_id: int
    project_name: str
    budget: int = Field(..., ge=0)
    top20_expenditures: List[RecipientAmount] = Field(default_factory=list)
    others_total: int = Field(0, ge=0)
    total_expenditure_amount: int = Field(0, ge=0)
    unknown_amount: int = Field(0, ge=0, description="支出先で説明できない予算額")


# --- 年度横断データ ---


class YearlyProjectData(CamelModel):
    project_id: Optional[int] = None
    budget: int = Field(0, ge=0)
    execution: int = Field(0, ge=0)
    execution_rate: Optional[float] = None


class ExpenditureTimeSeries(CamelModel):
    name: str
    total_amount: int = Field(..., ge=0, description="全年度の累計額")
    year_count: int = Field(..., ge=0, description="支出額が0でない年度数")
    yearly_amounts: Dict[int, int] = Field(default_factory=dict)


class ProjectTimeSeries(CamelModel):
    """事業名で統合した全年度の事業データ（projects/{projectKey}.json）"""

    project_name: str
    project_key: str
    ministry: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    yearly_data: Dict[int, YearlyProjectData] = Field(default_factory=dict)
    top_expenditures: List[ExpenditureTimeSeries] = Field(default_factory=list)


class ProjectIndexEntry(CamelModel):
    """検索・一覧用の事業サマリ（project-index.json）"""

    project_key: str
    project_name: str
    ministry: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    data_start_year: int
    data_end_year: int
    total_budget: int = Field(..., ge=0)
    average_budget: int = Field(..., ge=0)
