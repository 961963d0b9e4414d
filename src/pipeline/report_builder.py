"""
事業レポート構築

全年度のCSVから事業ごとの時系列データと検索用インデックスを構築して保存する
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pandas as pd
from tqdm import tqdm

from config import BUDGET_SUMMARY, EXPENDITURE, MAX_YEAR_WORKERS, PROJECT_OVERVIEW
from src.pipeline.emitter import write_artifacts
from src.pipeline.reconciler import build_project_index, reconcile_projects
from src.pipeline.records import (
    build_budget_frame,
    build_expenditure_frame,
    build_overview_frame,
)
from src.pipeline.sources import SourceDataError, get_year_directory, load_year_sources

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    """事業レポート構築の結果"""
    project_count: int = 0
    loaded_years: List[int] = field(default_factory=list)
    failed_years: List[int] = field(default_factory=list)


def _load_year(data_dir: Path, year: int) -> Dict[str, pd.DataFrame]:
    sources = load_year_sources(data_dir, year, [BUDGET_SUMMARY, EXPENDITURE, PROJECT_OVERVIEW])
    return {
        BUDGET_SUMMARY: build_budget_frame(sources[BUDGET_SUMMARY], year),
        EXPENDITURE: build_expenditure_frame(sources[EXPENDITURE], year),
        PROJECT_OVERVIEW: build_overview_frame(sources[PROJECT_OVERVIEW], year),
    }


def build_project_reports(data_dir: Path, output_dir: Path, years: List[int]) -> ReportResult:
    """
    全年度のデータを統合して事業レポートを出力

    読み込みに失敗した年度はログに残して除外し、残りの年度で統合する

    Args:
        data_dir: データディレクトリ
        output_dir: 出力ディレクトリ
        years: 対象年度

    Returns:
        ReportResult

    Raises:
        ArtifactWriteError: JSONの書き込みに失敗した場合
    """
    result = ReportResult()
    years = [year for year in sorted(years) if get_year_directory(data_dir, year).exists()]

    budget_by_year = {}
    expenditure_by_year = {}
    overview_by_year = {}

    with ThreadPoolExecutor(max_workers=MAX_YEAR_WORKERS) as executor:
        futures = {year: executor.submit(_load_year, data_dir, year) for year in years}

        for year in tqdm(years, desc="Loading years"):
            try:
                frames = futures[year].result()
            except SourceDataError as e:
                logger.error(f"Skipping year {year} in project reports: {e}")
                result.failed_years.append(year)
                continue

            budget_by_year[year] = frames[BUDGET_SUMMARY]
            expenditure_by_year[year] = frames[EXPENDITURE]
            overview_by_year[year] = frames[PROJECT_OVERVIEW]
            result.loaded_years.append(year)

    projects = reconcile_projects(budget_by_year, expenditure_by_year, overview_by_year)
    index = build_project_index(projects)

    artifacts = {output_dir / 'project-index.json': (index, False)}
    for project in projects:
        artifacts[output_dir / 'projects' / f"{project.project_key}.json"] = (project, False)

    write_artifacts(artifacts)

    result.project_count = len(projects)
    logger.info(
        f"Saved {len(projects)} project reports "
        f"({len(result.loaded_years)} years loaded, {len(result.failed_years)} failed)"
    )
    return result
