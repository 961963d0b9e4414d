"""
メインエントリーポイント

行政事業レビューのCSVを集計し、可視化用のJSONを出力する。
FastAPI アプリケーション、またはCLIとして実行可能
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, BackgroundTasks, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import AVAILABLE_YEARS, DATA_DIR, LOG_FILE, OUTPUT_DIR
from src.pipeline.manager import pipeline_manager, create_and_run_job
from src.pipeline.stages import AVAILABLE_STAGES

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    """ログ設定"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
        ]
    )


def _ensure_directories(output_dir: Path):
    """出力ディレクトリを作成"""
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Ensured directory exists: {output_dir}")


# FastAPIアプリ
app = FastAPI(
    title="RS System Budget Flow Preprocessor",
    description="行政事業レビューのCSVを集計し、予算の流れを可視化するためのJSONを生成するパイプライン",
    version="0.1.0",
)


class PipelineRequest(BaseModel):
    """パイプライン実行リクエスト"""
    start_stage: int = 1
    year: Optional[int] = None


@app.get("/")
async def root():
    """ルートエンドポイント"""
    return {
        "message": "RS System Budget Flow Preprocessor",
        "version": "0.1.0",
        "stages": [stage.name for stage in AVAILABLE_STAGES],
        "endpoints": {
            "run": "/api/pipeline/run",
            "status": "/api/pipeline/status/{job_id}",
            "jobs": "/api/pipeline/jobs",
            "cancel": "/api/pipeline/cancel/{job_id}",
        }
    }


@app.post("/api/pipeline/run")
async def run_pipeline(request: PipelineRequest, background_tasks: BackgroundTasks):
    """
    パイプラインを実行

    Args:
        request: パイプライン実行リクエスト
        background_tasks: バックグラウンドタスク

    Returns:
        ジョブID
    """
    if not 1 <= request.start_stage <= len(AVAILABLE_STAGES):
        raise HTTPException(
            status_code=400,
            detail=f"start_stage must be between 1 and {len(AVAILABLE_STAGES)}",
        )

    if request.year is not None and request.year not in AVAILABLE_YEARS:
        raise HTTPException(status_code=400, detail=f"year {request.year} is not available")

    _ensure_directories(OUTPUT_DIR)
    job_id = create_and_run_job(request.start_stage, target_year=request.year)

    return JSONResponse({
        "job_id": job_id,
        "message": f"Pipeline started from stage {request.start_stage}",
    })


@app.get("/api/pipeline/status/{job_id}")
async def get_job_status(job_id: str):
    """
    ジョブのステータスを取得

    Args:
        job_id: ジョブID

    Returns:
        ジョブステータス
    """
    job = pipeline_manager.get_job(job_id)

    if not job:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    return JSONResponse(job.to_dict())


@app.get("/api/pipeline/jobs")
async def list_jobs():
    """
    全ジョブのリストを取得

    Returns:
        ジョブリスト
    """
    jobs = pipeline_manager.get_all_jobs()
    return JSONResponse({
        "jobs": [job.to_dict() for job in jobs],
        "total": len(jobs),
    })


@app.post("/api/pipeline/cancel/{job_id}")
async def cancel_job(job_id: str):
    """
    ジョブをキャンセル

    Args:
        job_id: ジョブID

    Returns:
        キャンセル結果
    """
    success = pipeline_manager.cancel_job(job_id)

    if not success:
        raise HTTPException(status_code=400, detail=f"Cannot cancel job {job_id}")

    return JSONResponse({
        "job_id": job_id,
        "message": "Job cancelled successfully",
    })


def cli_main():
    """CLI実行"""
    import argparse

    parser = argparse.ArgumentParser(description="RS System Budget Flow Preprocessor CLI")
    parser.add_argument(
        "--stage",
        type=int,
        default=1,
        choices=list(range(1, len(AVAILABLE_STAGES) + 1)),
        help="Start stage (1: year data, 2: project reports)",
    )
    parser.add_argument(
        "--year",
        type=int,
        default=None,
        choices=AVAILABLE_YEARS,
        help="Process only specific year (e.g., 2014). If not specified, process all years.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DATA_DIR,
        help="Input directory containing year_YYYY/ CSV folders",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=OUTPUT_DIR,
        help="Output directory for JSON files",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--server",
        action="store_true",
        help="Run as API server",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="API server host",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="API server port",
    )

    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.server:
        # APIサーバーとして起動
        import uvicorn
        uvicorn.run(app, host=args.host, port=args.port)
    else:
        _ensure_directories(args.output_dir)

        logger.info(f"Starting pipeline from stage {args.stage}")
        if args.year:
            logger.info(f"Processing only year {args.year}")
        job_id = pipeline_manager.create_job(
            args.stage,
            target_year=args.year,
            data_dir=args.data_dir,
            output_dir=args.output_dir,
        )
        success = pipeline_manager.run_pipeline(job_id)

        if success:
            logger.info("Pipeline completed successfully")
            sys.exit(0)
        else:
            logger.error("Pipeline failed")
            sys.exit(1)


if __name__ == "__main__":
    cli_main()
