"""Deployment manifest models"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from ..constants import DEFAULT_API_VERSION, MANIFEST_NAMESPACE

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


@dataclass
class ManifestEntry:
    """Members of one metadata type"""
    metadata_type: str
    members: List[str] = field(default_factory=list)

    def add(self, member: str) -> bool:
        """Add a member, returns False if it was already present"""
        if member in self.members:
            return False
        self.members.append(member)
        return True

    def __contains__(self, member: str) -> bool:
        return member in self.members

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class Manifest:
    """Type-grouped listing of members to deploy or delete

    Each metadata type appears at most once and each member at most once
    within its type. Types and members keep insertion order.
    """
    api_version: str = DEFAULT_API_VERSION
    entries: Dict[str, ManifestEntry] = field(default_factory=dict)

    def add(self, metadata_type: str, member: str) -> bool:
        """Add a member under a metadata type

        Args:
            metadata_type: Metadata type name
            member: Member name

        Returns:
            True if the manifest changed
        """
        entry = self.entries.get(metadata_type)
        if entry is None:
            entry = ManifestEntry(metadata_type)
            self.entries[metadata_type] = entry
        return entry.add(member)

    def get(self, metadata_type: str) -> Optional[ManifestEntry]:
        return self.entries.get(metadata_type)

    def contains(self, metadata_type: str, member: str) -> bool:
        entry = self.entries.get(metadata_type)
        return entry is not None and member in entry

    @property
    def types(self) -> List[str]:
        return list(self.entries)

    @property
    def member_count(self) -> int:
        return sum(len(entry) for entry in self.entries.values())

    @property
    def is_empty(self) -> bool:
        return self.member_count == 0

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(self.entries.values())

    def to_dict(self) -> Dict[str, List[str]]:
        """Convert to dictionary"""
        return {name: list(entry.members) for name, entry in self.entries.items()}

    def to_xml(self) -> str:
        """Serialize to the platform manifest format"""
        root = ET.Element("Package", xmlns=MANIFEST_NAMESPACE)
        version = ET.SubElement(root, "version")
        version.text = self.api_version

        for entry in self.entries.values():
            types = ET.SubElement(root, "types")
            for member in entry.members:
                members = ET.SubElement(types, "members")
                members.text = member
            name = ET.SubElement(types, "name")
            name.text = entry.metadata_type

        ET.indent(root, space="    ")
        body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
        return f"{XML_DECLARATION}\n{body}\n"

    def write(self, path: Path) -> Path:
        """Write serialized manifest to file

        Args:
            path: Destination file

        Returns:
            Written path
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_xml(), encoding="utf-8")
        return path
