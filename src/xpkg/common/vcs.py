"""Read-only version control queries used to stamp branch and changeset."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple
from xml.etree import ElementTree

from ..constants import Constants

logger = logging.getLogger(__name__)

VCS_TIMEOUT_SEC = 30

_BRANCH_ARGS = {
    "hg": ("branch",),
    "git": ("rev-parse", "--abbrev-ref", "HEAD"),
}
_CHANGESET_ARGS = {
    "hg": ("id", "-i"),
    "git": ("rev-parse", "--short", "HEAD"),
}
_STATUS_ARGS = {
    "hg": ("status", "-mard"),
    "git": ("status", "--porcelain", "--untracked-files=no"),
}


@dataclass(frozen=True)
class VcsQuery:
    """One VCS command to run in a working copy."""
    tool: str
    args: Tuple[str, ...] = ()
    cwd: Optional[Path] = None
    timeout: float = VCS_TIMEOUT_SEC


@dataclass(frozen=True)
class VcsResult:
    """Outcome of a VcsQuery; ``ok`` is False when the tool failed or is missing."""
    ok: bool
    output: str = ""
    error: str = ""
    returncode: Optional[int] = None


@dataclass(frozen=True)
class VcsInfo:
    """Provenance recorded in ``vcs.info``."""
    tool: str
    branch: str = Constants.DEFAULT_BRANCH
    revision: str = Constants.DEFAULT_CHANGESET
    extra: dict = field(default_factory=dict)


def run_vcs_query(query: VcsQuery) -> VcsResult:
    """Run the query and capture its output; never raises for tool failures."""
    if shutil.which(query.tool) is None:
        return VcsResult(ok=False, error=f"{query.tool} not found")
    try:
        completed = subprocess.run(
            [query.tool, *query.args],
            cwd=str(query.cwd) if query.cwd else None,
            capture_output=True,
            text=True,
            timeout=query.timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return VcsResult(ok=False, error=f"{query.tool} timed out after {query.timeout} seconds")
    except OSError as exc:
        return VcsResult(ok=False, error=str(exc))
    return VcsResult(
        ok=completed.returncode == 0,
        output=completed.stdout.strip(),
        error=completed.stderr.strip(),
        returncode=completed.returncode,
    )


def detect_tool(cwd: Optional[Path] = None) -> Optional[str]:
    """Find the VCS owning ``cwd`` by looking for ``.hg`` or ``.git`` upwards."""
    start = Path(cwd or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        if (directory / ".hg").exists():
            return "hg"
        if (directory / ".git").exists():
            return "git"
    return None


def _single_line(tool: Optional[str], table: dict, cwd: Optional[Path], fallback: str) -> str:
    tool = tool or detect_tool(cwd)
    if tool not in table:
        return fallback
    result = run_vcs_query(VcsQuery(tool=tool, args=table[tool], cwd=cwd))
    if not result.ok or not result.output:
        logger.debug("%s query failed: %s", tool, result.error)
        return fallback
    return result.output.splitlines()[0].strip()


def get_current_branch(cwd: Optional[Path] = None, tool: Optional[str] = None) -> str:
    return _single_line(tool, _BRANCH_ARGS, cwd, Constants.DEFAULT_BRANCH)


def get_current_changeset(cwd: Optional[Path] = None, tool: Optional[str] = None) -> str:
    return _single_line(tool, _CHANGESET_ARGS, cwd, Constants.DEFAULT_CHANGESET)


def has_outstanding_changes(cwd: Optional[Path] = None, tool: Optional[str] = None) -> bool:
    tool = tool or detect_tool(cwd)
    if tool not in _STATUS_ARGS:
        return False
    result = run_vcs_query(VcsQuery(tool=tool, args=_STATUS_ARGS[tool], cwd=cwd))
    return result.ok and bool(result.output)


def render_vcs_info(info: VcsInfo) -> str:
    """``vcs.info`` XML document embedded in package archives."""
    root = ElementTree.Element("Vcs")
    ElementTree.SubElement(root, "Type").text = info.tool
    ElementTree.SubElement(root, "Branch").text = info.branch
    ElementTree.SubElement(root, "Revision").text = info.revision
    for key, value in info.extra.items():
        ElementTree.SubElement(root, key).text = str(value)
    return ElementTree.tostring(root, encoding="unicode")


def read_vcs_info(cwd: Optional[Path] = None, tool: Optional[str] = None) -> VcsInfo:
    """Provenance of the working copy at ``cwd``; uncommitted changes add ``Modified``."""
    tool = tool or detect_tool(cwd) or "none"
    extra = {"Modified": "true"} if has_outstanding_changes(cwd, tool) else {}
    return VcsInfo(
        tool=tool,
        branch=get_current_branch(cwd, tool),
        revision=get_current_changeset(cwd, tool),
        extra=extra,
    )
