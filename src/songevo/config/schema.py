"""Pydantic config schema and loader."""
from pathlib import Path
from typing import Literal, Optional
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationInfo

MAX_MUTATION_RATE = 0.2


class GenomeConfig(BaseModel):
    large_min: int = 128
    large_max: int = 256
    small_min: int = 8
    small_max: int = 16
    mutation_rate_bits: int = 8
    adam_mutation_rate: float = 0.03

    @field_validator("large_min", "small_min", "mutation_rate_bits")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("chromosome lengths must be non-negative")
        return v

    @field_validator("large_max", "small_max")
    @classmethod
    def validate_max(cls, v: int, info: ValidationInfo) -> int:
        lower = info.data.get(info.field_name.replace("_max", "_min"), 0)
        if v < lower:
            raise ValueError(f"{info.field_name} must be >= its minimum")
        return v

    @field_validator("adam_mutation_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if not 0 <= v <= MAX_MUTATION_RATE:
            raise ValueError(f"mutation rate must be within [0, {MAX_MUTATION_RATE}]")
        return v


class DecoderConfig(BaseModel):
    duration_unit_ms: int = 20
    min_codon_length: int = 1

    @field_validator("duration_unit_ms")
    @classmethod
    def validate_unit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("duration_unit_ms must be positive")
        return v

    @field_validator("min_codon_length")
    @classmethod
    def validate_codon_length(cls, v: int) -> int:
        if v < 1:
            raise ValueError("min_codon_length must be at least 1")
        return v


class ReproductionConfig(BaseModel):
    rating_smoothing: int = 1
    slot_capacity: Literal["source", "destination"] = "source"
    allow_selfing: bool = True

    @field_validator("rating_smoothing")
    @classmethod
    def validate_smoothing(cls, v: int) -> int:
        if v < 0:
            raise ValueError("rating_smoothing must be non-negative")
        return v


class NodeConfig(BaseModel):
    id: int
    capacity: int

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 0:
            raise ValueError("capacity must be non-negative")
        return v


class EdgeConfig(BaseModel):
    from_node: int
    to_node: int
    probability: float

    @field_validator("probability")
    @classmethod
    def validate_probability(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError("probability must be within [0, 1]")
        return v


class HabitatConfig(BaseModel):
    nodes: list[NodeConfig] = Field(default_factory=lambda: [NodeConfig(id=0, capacity=4)])
    edges: list[EdgeConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_topology(self) -> "HabitatConfig":
        ids = [n.id for n in self.nodes]
        if len(ids) != len(set(ids)):
            raise ValueError("node ids must be unique")
        known = set(ids)
        for edge in self.edges:
            if edge.from_node not in known or edge.to_node not in known:
                raise ValueError(f"edge {edge.from_node}->{edge.to_node} references an unknown node")
        return self


class StorageConfig(BaseModel):
    database: Path = Path("songevo.db")


class OutputConfig(BaseModel):
    run_dir: Optional[Path] = Path("runs")
    summarize: bool = True


class ConfigSchema(BaseModel):
    seed: Optional[int] = None
    genome: GenomeConfig = Field(default_factory=GenomeConfig)
    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    reproduction: ReproductionConfig = Field(default_factory=ReproductionConfig)
    habitat: HabitatConfig = Field(default_factory=HabitatConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    outputs: OutputConfig = Field(default_factory=OutputConfig)


def default_config_path() -> Path:
    return Path(__file__).with_name("defaults.yaml")


def load_config(path: Path) -> ConfigSchema:
    data = yaml.safe_load(Path(path).read_text()) or {}
    return ConfigSchema(**data)
