"""Remote package database clients.

``HttpPackageDatabase`` talks to a package service over HTTP:

* ``GET  {base}/packages/find``  query params ``name``, ``group``, ``language``,
  ``platform``, ``branch`` and optionally ``range``; answers
  ``{"version": <int>, "location": <storage key>, "datetime": <iso-8601>}``
  or 404 when nothing matches.
* ``GET  {base}/storage/{key}`` streams an archive.
* ``POST {base}/packages`` uploads an archive as multipart form data and
  answers with the same record as ``find``.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from ..common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from ..constants import Constants
from ..errors import FormatError, IntegrityError, TransportError
from ..package.models import Package, normalize_signature
from ..versioning.range import VersionRange
from ..versioning.version import ComparableVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageRecord:
    """One stored package version as known by the database."""
    version: ComparableVersion
    storage_key: str
    signature: datetime


class PackageDatabase:
    """Interface of a remote package database."""

    def find(self, package: Package) -> Optional[PackageRecord]:
        return self.find_in_range(package, None)

    def find_in_range(self, package: Package, version_range: Optional[VersionRange]) -> Optional[PackageRecord]:
        raise NotImplementedError

    def describe(self, storage_key: str) -> str:
        """Human readable location of a stored archive."""
        raise NotImplementedError

    def upload(self, package: Package, version: ComparableVersion, archive: Path, signature: datetime) -> PackageRecord:
        raise NotImplementedError

    def download(self, storage_key: str, destination: Path) -> bool:
        raise NotImplementedError


def _parse_record(payload: Any) -> PackageRecord:
    if not isinstance(payload, dict):
        raise FormatError(f"Unexpected package record: {payload!r}")
    try:
        version = ComparableVersion.from_int(int(payload["version"]))
        key = str(payload["location"])
        stamp = payload.get("datetime")
        signature = datetime.fromisoformat(stamp.replace("Z", "+00:00")) if stamp else datetime.fromtimestamp(0, tz=timezone.utc)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise FormatError(f"Unexpected package record {payload!r}: {exc}") from exc
    return PackageRecord(version=version, storage_key=key, signature=normalize_signature(signature))


class HttpPackageDatabase(PackageDatabase):
    """Package database reached over HTTP with ``requests``."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = Constants.REQUEST_TIMEOUT,
        retries: int = Constants.HTTP_RETRY_MAX,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = max(1, retries)
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", Constants.USER_AGENT)
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, url: str, *, retries: Optional[int] = None, **kwargs: Any) -> requests.Response:
        """Send a request, retrying timeouts, connection errors and 5xx answers."""
        attempts = retries or self.retries
        target = safe_url(url)
        last_error = ""
        for attempt in range(attempts):
            with Timer() as timer:
                try:
                    if is_debug_enabled(logger):
                        logger.debug(
                            "HTTP request",
                            extra=extra_context(
                                event="http_request", component="package_db", action=method,
                                target=target, attempt=attempt + 1,
                            ),
                        )
                    response = self.session.request(method, url, timeout=self.timeout, **kwargs)
                except requests.Timeout:
                    last_error = f"timed out after {self.timeout} seconds"
                except requests.RequestException as exc:  # includes ConnectionError
                    last_error = str(exc)
                else:
                    if response.status_code < 500:
                        if is_debug_enabled(logger):
                            logger.debug(
                                "HTTP response",
                                extra=extra_context(
                                    event="http_response", component="package_db", action=method,
                                    target=target, status_code=response.status_code,
                                    duration_ms=timer.duration_ms(),
                                ),
                            )
                        return response
                    last_error = f"server answered {response.status_code}"
                    response.close()
            if attempt + 1 < attempts:
                time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))
        logger.error("%s %s failed after %d attempts: %s", method, target, attempts, last_error)
        raise TransportError(f"{method} {target} failed: {last_error}")

    def find_in_range(self, package: Package, version_range: Optional[VersionRange]) -> Optional[PackageRecord]:
        params: Dict[str, str] = {
            "name": package.name,
            "group": package.group,
            "language": package.language,
            "platform": package.platform,
            "branch": package.branch,
        }
        if version_range is not None:
            params["range"] = str(version_range)
        response = self._request("GET", f"{self.base_url}/packages/find", params=params)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise TransportError(f"Package lookup for {package.name} answered {response.status_code}", package=package.name)
        try:
            record = _parse_record(response.json())
        except ValueError as exc:
            raise TransportError(f"Package lookup for {package.name} returned an invalid record", package=package.name) from exc
        if version_range is not None and not version_range.is_in_range(record.version):
            logger.warning("Package database returned %s %s outside %s", package.name, record.version, version_range)
            return None
        return record

    def describe(self, storage_key: str) -> str:
        return f"{self.base_url}/storage/{storage_key}"

    def download(self, storage_key: str, destination: Path) -> bool:
        response = self._request("GET", self.describe(storage_key), stream=True)
        with response:
            if response.status_code == 404:
                return False
            if response.status_code != 200:
                raise TransportError(f"Download of {storage_key} answered {response.status_code}")
            written = 0
            try:
                with open(destination, "wb") as handle:
                    for chunk in response.iter_content(chunk_size=Constants.HTTP_CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
                            written += len(chunk)
            except requests.RequestException as exc:
                raise TransportError(f"Download of {storage_key} interrupted: {exc}") from exc
        expected = response.headers.get("Content-Length")
        if expected is not None and expected.isdigit() and int(expected) != written:
            os.remove(destination)
            raise IntegrityError(f"Download of {storage_key} is {written} bytes, expected {expected}")
        return True

    def upload(self, package: Package, version: ComparableVersion, archive: Path, signature: datetime) -> PackageRecord:
        fields = {
            "name": package.name,
            "group": package.group,
            "language": package.language,
            "platform": package.platform,
            "branch": package.branch,
            "changeset": package.changeset,
            "version": str(version.to_int()),
            "datetime": normalize_signature(signature).isoformat(),
        }
        with open(archive, "rb") as handle:
            response = self._request(
                "POST",
                f"{self.base_url}/packages",
                retries=1,
                data=fields,
                files={"file": (Path(archive).name, handle, "application/zip")},
            )
        if response.status_code not in (200, 201):
            raise TransportError(f"Upload of {package.name} {version} answered {response.status_code}", package=package.name)
        try:
            return _parse_record(response.json())
        except ValueError as exc:
            raise TransportError(f"Upload of {package.name} returned invalid JSON", package=package.name) from exc
