from typing import Literal

from pydantic import BaseModel, Field


class PathsRules(BaseModel):
    source_document: str = "tokensource.json"
    tokens_dir: str = "tokens"
    backup_dir: str = ".tokensync-backups"


class BackupsRules(BaseModel):
    max_backups_per_operation: int = Field(default=10, ge=1)


class ConsolidateRules(BaseModel):
    layout: Literal["merged", "sets"] = "merged"


class SetBucketRule(BaseModel):
    name: str
    groups: list[str]


def _default_buckets() -> list[SetBucketRule]:
    return [
        SetBucketRule(name="core", groups=["Color Ramp", "color", "typography", "spacing"]),
        SetBucketRule(
            name="global",
            groups=[
                "dark",
                "light",
                "header",
                "body",
                "label",
                "opacity",
                "borderRadius",
                "borderWidth",
            ],
        ),
        SetBucketRule(name="components", groups=["button", "CTA", "FontFamily"]),
        SetBucketRule(
            name="simulate",
            groups=["appBackground", "brand", "surface", "content", "primary", "secondary"],
        ),
    ]


class ClassificationRules(BaseModel):
    buckets: list[SetBucketRule] = Field(default_factory=_default_buckets)
    precedence: list[str] = Field(
        default_factory=lambda: ["core", "global", "components", "simulate", "Content Typography"]
    )
    aliases: dict[str, str] = Field(
        default_factory=lambda: {"content-typography": "Content Typography"}
    )


class ValidationRules(BaseModel):
    suggestion_limit: int = Field(default=3, ge=1)
    suggestion_cutoff: float = Field(default=0.6, ge=0.0, le=1.0)


class LoggingRules(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class TokenSyncRules(BaseModel):
    version: int = 1
    paths: PathsRules = Field(default_factory=PathsRules)
    backups: BackupsRules = Field(default_factory=BackupsRules)
    consolidate: ConsolidateRules = Field(default_factory=ConsolidateRules)
    classification: ClassificationRules = Field(default_factory=ClassificationRules)
    validation: ValidationRules = Field(default_factory=ValidationRules)
    logging: LoggingRules = Field(default_factory=LoggingRules)
