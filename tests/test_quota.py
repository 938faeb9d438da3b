"""Tests for the quota override cascade."""

import re

from wiv.onboarding.apis import ApiEnabler
from wiv.onboarding.quota import (
    SERVICE_USAGE_ENDPOINT,
    QuotaOverrideSetter,
    consumer_limit_name,
    new_override_id,
)
from wiv.onboarding.types import CloudCallError, QuotaRequest, QuotaStrategyName
from wiv.onboarding.types.constants import BYTES_PER_TIB

PROJECT = "proj-one"


def _setter(client):
    return QuotaOverrideSetter(client, ApiEnabler(client))


def _request(project_id=PROJECT):
    return QuotaRequest.bigquery_daily_bytes(project_id, BYTES_PER_TIB)


def test_consumer_limit_names():
    request = _request()
    assert consumer_limit_name(request) == (
        "projects/proj-one/services/bigquery.googleapis.com/consumerQuotaMetrics/"
        "bigquery.googleapis.com%2Fquota%2Fquery%2Fusage/limits/%2Fd%2Fproject"
    )
    assert consumer_limit_name(request, full_metric=False) == (
        "projects/proj-one/services/bigquery.googleapis.com/consumerQuotaMetrics/"
        "quota%2Fquery%2Fusage/limits/%2Fd%2Fproject"
    )


def test_override_id_format():
    assert re.fullmatch(r"override-\d+-\d+", new_override_id())


def test_first_strategy_success(client):
    result = _setter(client).apply(_request())

    assert result.success
    assert [a.strategy for a in result.attempts] == [QuotaStrategyName.NATIVE_CREATE]
    kind, parent, value, dimensions, force = client.quota_calls[0]
    assert (kind, value, dimensions, force) == ("create", 1_048_576, None, True)
    assert parent == consumer_limit_name(_request())


def test_second_strategy_success_stops_cascade(client):
    client.quota_errors["create"] = CloudCallError("create refused", status=400)

    result = _setter(client).apply(_request())

    assert result.success
    assert len(result.attempts) == 2
    assert [a.success for a in result.attempts] == [False, True]
    assert result.winning_strategy is QuotaStrategyName.NATIVE_CREATE_WITH_DIMENSIONS
    assert [c[0] for c in client.quota_calls] == ["create", "create_dimensions"]
    assert client.quota_calls[1][3] == {"project": PROJECT}


def test_all_strategies_fail(client):
    client.fail_all_quota_strategies()

    result = _setter(client).apply(_request())

    assert not result.success
    assert result.winning_strategy is None
    assert [a.strategy for a in result.attempts] == list(QuotaStrategyName)
    assert all(a.reason for a in result.attempts)
    assert [c[0] for c in client.quota_calls] == ["create", "create_dimensions", "update", "put", "post"]


def test_rest_fallback_urls(client):
    for kind in ("create", "create_dimensions", "update", "put"):
        client.quota_errors[kind] = CloudCallError(f"{kind} refused")

    result = _setter(client).apply(_request())

    assert result.winning_strategy is QuotaStrategyName.REST_POST_ALT
    limit = consumer_limit_name(_request(), full_metric=False)

    _, put_url, put_payload, _, _ = client.quota_calls[3]
    override_id = put_url.rsplit("/", 1)[1]
    assert put_url == f"{SERVICE_USAGE_ENDPOINT}/v1beta1/{limit}/consumerOverrides/{override_id}"
    assert put_payload == {"overrideValue": "1048576"}

    _, post_url, post_payload, params, _ = client.quota_calls[4]
    assert post_url == f"{SERVICE_USAGE_ENDPOINT}/v1/{limit}/consumerOverrides"
    assert params == {"overrideId": override_id}
    assert post_payload["name"] == f"{limit}/consumerOverrides/{override_id}"


def test_non_ok_http_status_counts_as_failure(client):
    for kind in ("create", "create_dimensions", "update"):
        client.quota_errors[kind] = CloudCallError(f"{kind} refused")
    client.http_status["put"] = 403

    result = _setter(client).apply(_request())

    assert result.winning_strategy is QuotaStrategyName.REST_POST_ALT
    assert result.attempts[3].reason.startswith("HTTP 403")


def test_unsafe_override_is_annotated(client):
    client.fail_all_quota_strategies()
    client.quota_errors["create"] = CloudCallError(
        "Failed precondition: COMMON_QUOTA_UNSAFE_OVERRIDE", status=400
    )

    result = _setter(client).apply(_request())

    first = result.attempts[0]
    assert first.unsafe_override
    assert "force" in first.reason
    assert not any(a.unsafe_override for a in result.attempts[1:])


def test_skipped_when_service_cannot_be_enabled(client):
    client.enable_errors[(PROJECT, "bigquery.googleapis.com")] = CloudCallError("Billing must be enabled")

    result = _setter(client).apply(_request())

    assert not result.success
    assert result.attempts == []
    assert result.skipped_reason
    assert client.quota_calls == []


def test_service_usage_is_enabled_before_attempts(client):
    _setter(client).set_daily_quota(PROJECT, "bigquery.googleapis.com/quota/query/usage", "1/d/{project}", 42)

    assert client.enable_calls == [
        (PROJECT, "bigquery.googleapis.com"),
        (PROJECT, "serviceusage.googleapis.com"),
    ]
    assert client.quota_calls[0][2] == 42


def test_dry_run_issues_no_override_calls(client):
    setter = QuotaOverrideSetter(client, ApiEnabler(client, dry_run=True))

    result = setter.apply(_request())

    assert not result.success
    assert result.skipped_reason == "dry run"
    assert result.attempts == []
    assert client.quota_calls == []
    assert client.enable_calls == []
