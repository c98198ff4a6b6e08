"""
Configuration Enums for the simpleflux driver

Import Policy:
    from simpleflux.config.enums import BranchGroup

DO NOT use: from simpleflux.config.enums import *
"""

from enum import Enum


class BranchGroup(Enum):
    """Record groups a flux file may carry for every entry.

    Options:
        ENTRY: Mandatory ray record (species, weight, position, momentum)
        NUMI: Parent-decay information of the ray (optional)
        AUX: Auxiliary int/double values named by the metadata (optional)

    Note:
        The value is the name used in a branch request string such as
        "entry,numi,aux".
    """
    ENTRY = "entry"
    NUMI = "numi"
    AUX = "aux"

    @classmethod
    def parse_request(cls, request: str) -> list["BranchGroup"]:
        """Parse a comma-separated request string into unique groups.

        Raises:
            ValueError: If a name is not a known group.
        """
        groups: list[BranchGroup] = []
        for name in request.split(","):
            name = name.strip().lower()
            if not name:
                continue
            group = cls(name)
            if group not in groups:
                groups.append(group)
        return groups
