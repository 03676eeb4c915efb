"""Recording modes controlling the ancestor bookkeeping of dropped spans."""

from enum import Enum


class RecordingMode(Enum):
    """
    Which ancestor fields a dropped span publishes to its descendants.

    PARENT_LINK: none, children only know their direct parent id.
    ANCESTOR_LINK: the id of the nearest sampled ancestor.
    ANCESTOR_LINK_AND_DISTANCE: the id and the number of dropped ancestors in between.
    """

    PARENT_LINK = (False, False)
    ANCESTOR_LINK = (True, False)
    ANCESTOR_LINK_AND_DISTANCE = (True, True)

    @property
    def collect_ancestor_link(self) -> bool:
        return self.value[0]

    @property
    def collect_ancestor_distance(self) -> bool:
        return self.value[1]

    @classmethod
    def from_name(cls, name: str) -> "RecordingMode":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown recording mode: {name!r}") from None
