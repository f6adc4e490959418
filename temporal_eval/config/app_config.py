#!filepath: temporal_eval/config/app_config.py
import os

import yaml
from pydantic import BaseModel, Field

from .log_config import LogConfig
from .simulate_config import SimulateConfig


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    simulate: SimulateConfig

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置
        - 默认使用 <package>/config/base.yml
        - 相对路径（input_file 等）按配置文件所在目录解析
        """
        if path is None:
            path = os.path.join(os.path.dirname(__file__), "base.yml")

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        # simulate 段缺失时交给 pydantic 报错（required field）
        sim = raw.get("simulate")
        if isinstance(sim, dict):
            base = os.path.dirname(os.path.abspath(path))
            sim = dict(sim)
            for key in ("input_file", "output_file", "extended_output_file", "result_dir"):
                value = sim.get(key)
                if value and not os.path.isabs(value):
                    sim[key] = os.path.join(base, value)
            raw["simulate"] = sim

        return cls(**raw)
