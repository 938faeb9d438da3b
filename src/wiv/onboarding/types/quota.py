"""Quota override requests and attempt records."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .constants import BIGQUERY_USAGE_METRIC, BIGQUERY_USAGE_UNIT, BYTES_PER_MIB


class QuotaStrategyName(str, Enum):
    """Mechanisms tried, in this order, to install a quota override."""

    NATIVE_CREATE = "native_create"
    NATIVE_CREATE_WITH_DIMENSIONS = "native_create_with_dimensions"
    NATIVE_UPDATE = "native_update"
    REST_PUT = "rest_put"
    REST_POST_ALT = "rest_post_alt"


@dataclass(frozen=True)
class QuotaRequest:
    """A daily quota cap to install on a project.

    Attributes
    ----------
    project_id : str
        Consumer project.
    metric_id : str
        Full metric name, e.g. ``"bigquery.googleapis.com/quota/query/usage"``.
    unit : str
        Limit unit, e.g. ``"1/d/{project}"``.
    daily_limit_value : int
        Override value in the metric's unit (MiB for BigQuery query usage).
    """

    project_id: str
    metric_id: str
    unit: str
    daily_limit_value: int

    @property
    def service(self) -> str:
        """Service that owns the metric (the part before the first ``/``)."""
        return self.metric_id.split("/", 1)[0]

    def for_project(self, project_id: str) -> "QuotaRequest":
        return replace(self, project_id=project_id)

    @classmethod
    def bigquery_daily_bytes(cls, project_id: str, max_bytes_per_day: int) -> "QuotaRequest":
        """Build a BigQuery query-usage cap from a byte budget (converted to MiB)."""
        return cls(
            project_id=project_id,
            metric_id=BIGQUERY_USAGE_METRIC,
            unit=BIGQUERY_USAGE_UNIT,
            daily_limit_value=max_bytes_per_day // BYTES_PER_MIB,
        )


@dataclass(frozen=True)
class QuotaAttemptRecord:
    strategy: QuotaStrategyName
    success: bool
    reason: Optional[str] = None
    unsafe_override: bool = False


@dataclass
class QuotaResult:
    """Result of the quota cascade for one project."""

    success: bool
    attempts: list[QuotaAttemptRecord] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def winning_strategy(self) -> Optional[QuotaStrategyName]:
        return next((a.strategy for a in self.attempts if a.success), None)


__all__ = ["QuotaAttemptRecord", "QuotaRequest", "QuotaResult", "QuotaStrategyName"]
