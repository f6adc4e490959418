#!filepath: temporal_eval/utils/filesystem.py
from pathlib import Path

from temporal_eval.utils.logger import logs


class FileSystem:
    """
    统一文件系统工具
    - 自动创建目录
    - 判断压缩后缀
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        """
        创建目录（如果不存在）
        """
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logs.debug(f"[FS] 创建目录: {p}")
        return p

    @staticmethod
    def ensure_parent(path: str | Path) -> Path:
        p = Path(path)
        FileSystem.ensure_dir(p.parent)
        return p

    @staticmethod
    def logical_suffix(path: str | Path) -> str:
        """
        Suffix ignoring a trailing compression extension:
            ratings.csv.gz -> .csv
            out.parquet    -> .parquet
        """
        p = Path(path)
        if p.suffix == ".gz":
            return Path(p.stem).suffix.lower()
        return p.suffix.lower()

    @staticmethod
    def is_gzip(path: str | Path) -> bool:
        return Path(path).suffix == ".gz"
