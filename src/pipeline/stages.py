"""
パイプラインステージ定義

各ステージの処理ロジックを定義
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional

from config import AVAILABLE_YEARS, MAX_YEAR_WORKERS
from src.pipeline.report_builder import build_project_reports
from src.pipeline.sources import SourceDataError, get_year_directory
from src.pipeline.year_builder import process_year_data

logger = logging.getLogger(__name__)


class PipelineStage:
    """パイプラインステージの基底クラス"""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    def run(
        self,
        data_dir: Path,
        output_dir: Path,
        update_callback: Optional[Callable] = None,
        target_year: Optional[int] = None,
    ) -> bool:
        """
        ステージを実行

        Args:
            data_dir: CSVデータディレクトリ
            output_dir: JSON出力ディレクトリ
            update_callback: 進捗更新用のコールバック関数
            target_year: 処理対象年度（指定しない場合は全年度）

        Returns:
            成功した場合True
        """
        raise NotImplementedError


def _target_years(target_year: Optional[int]) -> List[int]:
    if target_year:
        return [target_year]
    return list(AVAILABLE_YEARS)


class Stage01_BuildYearData(PipelineStage):
    """Stage 1: 年度別データ（サンキー図・統計・府省庁別事業・支出先）"""

    def __init__(self):
        super().__init__(
            name="Stage 1: Build Year Data",
            description="年度ごとのCSVを集計してJSONに変換"
        )

    def run(
        self,
        data_dir: Path,
        output_dir: Path,
        update_callback: Optional[Callable] = None,
        target_year: Optional[int] = None,
    ) -> bool:
        """年度ごとに並列で処理（1年度の失敗は他の年度に影響しない）"""
        logger.info(f"Starting {self.name}")
        if target_year:
            logger.info(f"Processing only year {target_year}")

        years = []
        for year in _target_years(target_year):
            if get_year_directory(data_dir, year).exists():
                years.append(year)
            else:
                logger.info(f"Skipping year {year} (directory not found)")

        if not years:
            logger.error(f"No year directories found in {data_dir}")
            return False

        success_years = []
        failed_years = []

        with ThreadPoolExecutor(max_workers=MAX_YEAR_WORKERS) as executor:
            futures = {
                year: executor.submit(process_year_data, year, data_dir, output_dir)
                for year in years
            }

            for idx, year in enumerate(years, 1):
                if update_callback:
                    update_callback(f"Building year {year} ({idx}/{len(years)})")

                # 書き込みエラーはここで送出され、パイプライン全体が停止する
                try:
                    futures[year].result()
                except SourceDataError as e:
                    logger.error(f"Year {year} failed: {e}")
                    failed_years.append(year)
                    continue

                success_years.append(year)

        logger.info(
            f"Completed {self.name}: {len(years)} years, "
            f"{len(success_years)} success, {len(failed_years)} failed"
        )
        if failed_years:
            logger.error(f"Failed years: {', '.join(str(year) for year in failed_years)}")

        return not failed_years


class Stage02_BuildProjectReports(PipelineStage):
    """Stage 2: 年度横断の事業レポート"""

    def __init__(self):
        super().__init__(
            name="Stage 2: Build Project Reports",
            description="事業名で全年度を統合し、事業ごとの時系列データとインデックスを作成"
        )

    def run(
        self,
        data_dir: Path,
        output_dir: Path,
        update_callback: Optional[Callable] = None,
        target_year: Optional[int] = None,
    ) -> bool:
        """事業レポートを構築"""
        logger.info(f"Starting {self.name}")

        if target_year:
            logger.info(f"Skipping {self.name}: requires all years (target_year={target_year})")
            return True

        if update_callback:
            update_callback("Reconciling projects across years")

        result = build_project_reports(data_dir, output_dir, list(AVAILABLE_YEARS))

        logger.info(f"Completed {self.name}: {result.project_count} projects")
        return not result.failed_years


# 利用可能なステージのリスト
AVAILABLE_STAGES = [
    Stage01_BuildYearData(),
    Stage02_BuildProjectReports(),
]


def get_stage_by_number(stage_num: int) -> Optional[PipelineStage]:
    """
    ステージ番号からステージを取得

    Args:
        stage_num: ステージ番号（1-2）

    Returns:
        PipelineStageオブジェクト（存在しない場合はNone）
    """
    if 1 <= stage_num <= len(AVAILABLE_STAGES):
        return AVAILABLE_STAGES[stage_num - 1]
    return None
