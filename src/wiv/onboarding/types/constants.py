"""Shared constants for wiv.onboarding types."""

from __future__ import annotations

DEFAULT_PROJECT_ID = "wiv-gpc-project"
DEFAULT_PROJECT_NAME = "Wiv GCP Project"

SERVICE_ACCOUNT_NAME = "wiv-sa"
SERVICE_ACCOUNT_DISPLAY_NAME = "Wiv Service Account"
KEY_FILE_NAME = "key.json"

# APIs that typically don't require billing come first
ONBOARDING_APIS: tuple[str, ...] = (
    "iam.googleapis.com",
    "cloudresourcemanager.googleapis.com",
    "recommender.googleapis.com",
    "compute.googleapis.com",
    "bigquery.googleapis.com",
)

SWEEP_APIS: tuple[str, ...] = (
    "iam.googleapis.com",
    "recommender.googleapis.com",
    "cloudresourcemanager.googleapis.com",
    "compute.googleapis.com",
)

SERVICE_USAGE_API = "serviceusage.googleapis.com"

ONBOARDING_ROLES: tuple[str, ...] = (
    "roles/recommender.computeViewer",
    "roles/recommender.viewer",
    "roles/monitoring.viewer",
    "roles/compute.viewer",
    "roles/bigquery.jobUser",
    "roles/recommender.bigQueryCapacityCommitmentsViewer",
    "roles/container.viewer",
    "roles/bigquery.dataViewer",
    "roles/cloudsql.viewer",
    "roles/run.viewer",
    "roles/cloudfunctions.viewer",
    "roles/pubsub.viewer",
    "roles/spanner.viewer",
    "roles/logging.viewer",
    "roles/iam.securityReviewer",
    "roles/compute.networkViewer",
    "roles/cloudbuild.builds.viewer",
    "roles/dataflow.viewer",
    "roles/redis.viewer",
    "roles/securitycenter.viewer",
    "roles/cloudkms.viewer",
    "roles/artifactregistry.reader",
    "roles/gkebackup.viewer",
    "roles/cloudasset.viewer",
    "roles/bigquery.resourceViewer",
)

BYTES_PER_MIB = 1_048_576
BYTES_PER_TIB = 1_099_511_627_776

BIGQUERY_USAGE_METRIC = "bigquery.googleapis.com/quota/query/usage"
BIGQUERY_USAGE_UNIT = "1/d/{project}"
DEFAULT_MAX_BYTES_PER_DAY = BYTES_PER_TIB

# ErrorInfo reasons returned by Google APIs when billing is missing
BILLING_ERROR_REASONS: frozenset[str] = frozenset(
    {
        "BILLING_DISABLED",
        "BILLING_NOT_ENABLED",
        "UREQ_PROJECT_BILLING_NOT_FOUND",
        "PROJECT_BILLING_NOT_FOUND",
    }
)

UNSAFE_OVERRIDE_MARKER = "COMMON_QUOTA_UNSAFE_OVERRIDE"

__all__ = [
    "BIGQUERY_USAGE_METRIC",
    "BIGQUERY_USAGE_UNIT",
    "BILLING_ERROR_REASONS",
    "BYTES_PER_MIB",
    "BYTES_PER_TIB",
    "DEFAULT_MAX_BYTES_PER_DAY",
    "DEFAULT_PROJECT_ID",
    "DEFAULT_PROJECT_NAME",
    "KEY_FILE_NAME",
    "ONBOARDING_APIS",
    "ONBOARDING_ROLES",
    "SERVICE_ACCOUNT_DISPLAY_NAME",
    "SERVICE_ACCOUNT_NAME",
    "SERVICE_USAGE_API",
    "SWEEP_APIS",
    "UNSAFE_OVERRIDE_MARKER",
]
