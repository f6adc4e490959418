from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from temporal_eval.utils.errors import ConfigurationError


class AlgorithmConfig(BaseModel):
    """
    AlgorithmConfig（FINAL）

    语义：
      - 训练配置（opaque to the replay core）
      - type 决定 AlgorithmFactory 中的构造器
      - params 原样传给构造器
    """

    name: str = "default"
    type: str
    params: Dict[str, Any] = Field(default_factory=dict)


class RatingFileSchema(BaseModel):
    """
    ratings 文件字段映射：
      - 默认列名：user, item, rating, timestamp
      - MovieLens ratings.csv: user_col=userId, item_col=movieId
      - header=False 时按 positional 顺序解析（第 4 列缺省即无 timestamp）
      - delimiter 缺省按后缀推断（.tsv → tab，.dat → "::"，其余 ","）
    """

    user_col: str = "user"
    item_col: str = "item"
    rating_col: str = "rating"
    timestamp_col: str = "timestamp"
    delimiter: Optional[str] = None
    header: bool = True
    positional: List[str] = Field(
        default_factory=lambda: ["user", "item", "rating", "timestamp"]
    )


class SimulateConfig(BaseModel):
    """
    SimulateConfig（FINAL）

    语义：
      - 一次 temporal replay 的“实验定义”
      - rebuild_period 单位：秒
      - output_file 缺省时不写表格输出，但 metrics 照常计算
    """

    name: str = "default"

    input_file: Optional[str] = None
    input_schema: RatingFileSchema = Field(default_factory=RatingFileSchema)

    # exactly ONE is required at run time (validated by require_single_algorithm)
    algorithms: List[AlgorithmConfig] = Field(default_factory=list)

    rebuild_period: int = Field(default=24 * 3600, gt=0)
    list_size: int = Field(default=10, ge=1)

    output_file: Optional[str] = None
    extended_output_file: Optional[str] = None
    result_dir: Optional[str] = None

    seed: Optional[int] = None

    # log progress every N events (0 disables)
    progress_every: int = Field(default=10_000, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _single_algorithm_alias(cls, raw: Any) -> Any:
        # `algorithm: {...}` is accepted as shorthand for a one-element list
        if isinstance(raw, dict) and "algorithm" in raw:
            raw = dict(raw)
            algo = raw.pop("algorithm")
            if algo is not None:
                raw["algorithms"] = list(raw.get("algorithms") or []) + [algo]
        return raw

    def require_single_algorithm(self) -> AlgorithmConfig:
        if len(self.algorithms) != 1:
            raise ConfigurationError(
                f"[SimulateConfig] exactly one algorithm required, got {len(self.algorithms)}"
            )
        return self.algorithms[0]

    def require_input_file(self) -> str:
        if not self.input_file:
            raise ConfigurationError("[SimulateConfig] no data file specified")
        return self.input_file
