from typing import List, Protocol

from core.contracts.models import ChangeSetRecord, FileDelta


class ChangeSetSource(Protocol):
    """A protocol for services that list merged change sets of a repository."""

    async def list_closed_change_sets(self, per_page: int = 10) -> List[ChangeSetRecord]:
        """
        Lists closed change sets, most recently updated first.

        Raises:
            CollectorError: If the listing fails or returns malformed records.
        """
        ...

    async def list_file_deltas(self, change_set_id: int) -> List[FileDelta]:
        """
        Lists the files touched by one change set.

        Raises:
            CollectorError: If the call fails or returns malformed entries.
        """
        ...
