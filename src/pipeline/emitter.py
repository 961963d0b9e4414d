"""
JSON出力モジュール

集計結果をフロントエンド用のJSONファイルとして保存
"""
import json
import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ArtifactWriteError(Exception):
    """JSONファイルの書き込みに失敗した時の例外"""
    pass


def to_jsonable(obj: Any, exclude_none: bool = False) -> Any:
    """
    pydanticモデル（およびそのlist/dict）をJSON互換の値に変換

    Args:
        obj: 変換対象
        exclude_none: Noneのフィールドを出力しない

    Returns:
        JSON互換の値
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode='json', by_alias=True, exclude_none=exclude_none)
    if isinstance(obj, dict):
        return {str(key): to_jsonable(value, exclude_none) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(value, exclude_none) for value in obj]
    return obj


def dumps(obj: Any, exclude_none: bool = False) -> str:
    """整形済みJSON文字列を生成（同じ入力からは常に同じ文字列）"""
    return json.dumps(to_jsonable(obj, exclude_none), ensure_ascii=False, indent=2) + '\n'


def write_json(path: Path, obj: Any, exclude_none: bool = False) -> Path:
    """
    JSONファイルを書き込む

    一時ファイルに書いてから置き換えるため、失敗しても途中までのファイルは残らない

    Args:
        path: 出力先
        obj: 出力するデータ
        exclude_none: Noneのフィールドを出力しない

    Returns:
        出力先パス

    Raises:
        ArtifactWriteError: 書き込みに失敗した場合
    """
    content = dumps(obj, exclude_none)
    tmp_path = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            'w', encoding='utf-8', dir=path.parent, prefix=f".{path.name}.", suffix='.tmp',
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            f.write(content)
        # 一時ファイルは 0600 で作られるため、静的配信できる権限にする
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ArtifactWriteError(f"Failed to write {path}: {e}") from e

    logger.info(f"  Saved: {path}")
    return path


def write_artifacts(artifacts: Dict[Path, Tuple[Any, bool]], max_workers: int = 4) -> None:
    """
    複数のJSONファイルを並列で書き込む

    Args:
        artifacts: 出力先 → (データ, exclude_none)
        max_workers: 並列数

    Raises:
        ArtifactWriteError: いずれかの書き込みに失敗した場合（他のファイルは書き込みを続ける）
    """
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(write_json, path, obj, exclude_none)
            for path, (obj, exclude_none) in artifacts.items()
        ]
        for future in futures:
            future.result()
