from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List
from urllib.parse import urlparse

from voice_proxy.config import AppSettings, UpstreamSettings
from voice_proxy.core.logging import get_logger


class CheckStatus(str, Enum):
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: CheckStatus
    details: str


def run_startup_checks(settings: AppSettings) -> List[CheckResult]:
    """
    Runs fast preflight checks at process start.
    Configuration only: no request is sent upstream (a probe would cost a synthesis).
    """
    log = get_logger(component="startup_checks")
    results: List[CheckResult] = [
        _check_upstream_url(settings.upstream),
        _check_upstream_credentials(settings.upstream),
    ]

    counts: Dict[CheckStatus, int] = {s: sum(1 for r in results if r.status == s) for s in CheckStatus}
    log.info(
        "startup_checks_complete",
        ok=counts[CheckStatus.OK],
        warn=counts[CheckStatus.WARN],
        fail=counts[CheckStatus.FAIL],
    )
    for r in results:
        log.info("startup_check", name=r.name, status=r.status.value, details=r.details)

    return results


def _check_upstream_url(upstream: UpstreamSettings) -> CheckResult:
    name = "upstream_url"
    parsed = urlparse(upstream.url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return CheckResult(
            name=name,
            status=CheckStatus.FAIL,
            details="VOICE_UPSTREAM_URL is not an absolute http(s) URL: %r" % (upstream.url,),
        )
    return CheckResult(name=name, status=CheckStatus.OK, details=upstream.url)


def _check_upstream_credentials(upstream: UpstreamSettings) -> CheckResult:
    name = "upstream_credentials"
    if not upstream.api_key:
        return CheckResult(name=name, status=CheckStatus.FAIL, details="VOICE_UPSTREAM_API_KEY is not set")
    if not upstream.customer_id:
        return CheckResult(
            name=name,
            status=CheckStatus.WARN,
            details="VOICE_UPSTREAM_CUSTOMER_ID is not set (CustomerId header omitted)",
        )
    return CheckResult(name=name, status=CheckStatus.OK, details="API key and customer id present")
