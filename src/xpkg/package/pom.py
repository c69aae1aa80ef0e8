"""Minimal POM reader.

Reads the parts of ``pom.xml`` the resolver needs::

    <Package Name="core" Group="com.virtuos.tnt" Platforms="Win32;x64">
      <Versions>
        <Current Platform="*" Branch="default">1.2.0</Current>
      </Versions>
      <Variables><Sdk>v2</Sdk></Variables>
      <Content>
        <Item Platform="*" Src="bin\\*.dll" Dst="bin" />
      </Content>
      <Dependency Package="zlib" Platforms="Win32">
        <Group>com.virtuos.tnt</Group>
        <Version Platform="*" Branch="default">[1.0,2.0)</Version>
        <Type>Package</Type>
      </Dependency>
    </Package>

``Dependency`` elements may also be wrapped in a ``Dependencies`` element.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple, Union
from xml.etree import ElementTree

from ..constants import Constants
from ..dependency.resource import DependencyResource, expand_vars
from ..errors import FormatError, NotFoundError
from ..versioning.version import ComparableVersion
from ..versioning.versions import Versions

logger = logging.getLogger(__name__)


@dataclass
class Pom:
    """Package object model."""
    name: str
    group: str = Constants.DEFAULT_GROUP
    type: str = Constants.DEFAULT_DEPENDENCY_TYPE
    platforms: List[str] = field(default_factory=list)
    versions: Versions = field(default_factory=Versions)
    variables: Dict[str, str] = field(default_factory=dict)
    dependencies: List[DependencyResource] = field(default_factory=list)
    content: Dict[str, List[Tuple[str, str]]] = field(default_factory=dict)

    def content_for_platform(self, platform: str) -> List[Tuple[str, str]]:
        """(src, dst) globs for a platform plus those declared for every platform."""
        items = list(self.content.get(Constants.WILDCARD, []))
        for key, entries in self.content.items():
            if key != Constants.WILDCARD and key.lower() == platform.lower():
                items.extend(entries)
        return items


def _split_platforms(text: str) -> List[str]:
    return [p.strip() for p in text.replace(",", ";").split(";") if p.strip()]


def parse_pom(text: Union[str, bytes]) -> Pom:
    """Parse POM XML text, raising FormatError when it is not a ``Package`` document."""
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as exc:
        raise FormatError(f"Invalid pom.xml: {exc}") from exc
    if root.tag != "Package":
        raise FormatError(f"Invalid pom.xml: root element is '{root.tag}', expected 'Package'")

    pom = Pom(name=root.get("Name", ""), group=root.get("Group", Constants.DEFAULT_GROUP))
    pom.platforms = _split_platforms(root.get("Platforms", ""))

    dependency_nodes = []
    for child in root:
        if not isinstance(child.tag, str):
            continue
        text_value = (child.text or "").strip()
        if child.tag == "Name" and text_value:
            pom.name = text_value
        elif child.tag == "Group" and text_value:
            pom.group = text_value
        elif child.tag == "Type" and text_value:
            pom.type = text_value
        elif child.tag == "Platforms":
            pom.platforms = _split_platforms(text_value)
        elif child.tag == "Versions":
            for item in child:
                if not isinstance(item.tag, str):
                    continue
                value = (item.text or "").strip() or Constants.DEFAULT_VERSION
                pom.versions.add(
                    item.get("Platform", Constants.WILDCARD),
                    ComparableVersion(value),
                    branch=item.get("Branch", Constants.WILDCARD),
                )
        elif child.tag == "Variables":
            for item in child:
                if isinstance(item.tag, str):
                    pom.variables.setdefault(item.tag, (item.text or "").strip())
        elif child.tag == "Content":
            for item in child:
                src, dst = item.get("Src"), item.get("Dst")
                if src is None or dst is None:
                    continue
                platform = item.get("Platform", Constants.WILDCARD)
                pom.content.setdefault(platform, []).append(
                    (expand_vars(src, pom.variables), expand_vars(dst, pom.variables))
                )
        elif child.tag == "Dependencies":
            dependency_nodes.extend(node for node in child if node.tag == "Dependency")
        elif child.tag == "Dependency":
            dependency_nodes.append(child)

    if not pom.name:
        raise FormatError("Invalid pom.xml: package has no name")

    variables = dict(pom.variables)
    variables.setdefault("Name", pom.name)
    for node in dependency_nodes:
        dependency = DependencyResource.from_element(node)
        dependency.expand_vars(variables)
        pom.dependencies.append(dependency)

    logger.debug("Loaded pom for %s with %d dependencies", pom.name, len(pom.dependencies))
    return pom


def load_pom(path: Union[str, Path]) -> Pom:
    """Load ``pom.xml`` from a file, or from a directory containing one."""
    path = Path(path)
    if path.is_dir():
        path = path / Constants.POM_FILE
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise NotFoundError(f"Cannot read {path}: {exc}") from exc
    return parse_pom(data)
