"""Protocols for service connectors taking part in resolution.

The resolver depends only on this contract, never on a concrete service
client, following the dependency inversion principle.
"""

from typing import Any, Protocol, runtime_checkable

from songvert.domain.entities import ServiceMatch, Source, Track

from .algorithms import ScoringPolicy
from .types import CandidateFields


@runtime_checkable
class ServiceConnector(Protocol):
    """Contract every service connector fulfils.

    Raw records are whatever the connector's own schema models are; the
    resolver only passes them back into the connector that produced them.
    """

    source: Source
    supports_identifier_lookup: bool
    requires_full_fetch: bool
    scoring: ScoringPolicy

    async def lookup_by_identifier(self, isrc: str) -> list[Any]:
        """Return records carrying ``isrc``.

        Raises:
            RecordNotFoundError: nothing carries the identifier
        """
        ...

    async def search(self, query: str) -> list[Any]:
        """Return candidate records in the service's own relevance order."""
        ...

    async def fetch_full_record(self, raw: Any) -> Any:
        """Fetch the complete record for a partial search result."""
        ...

    def build_search_query(self, track: Track) -> str:
        """Shape name, first artist, album and year into the service's query form."""
        ...

    def describe_candidate(self, raw: Any) -> CandidateFields:
        """Extract the values scoring and album disambiguation look at."""
        ...

    def parse_match(self, raw: Any) -> ServiceMatch:
        """Project an accepted record onto the service's match type."""
        ...

    def parse_to_canonical(self, raw: Any) -> Track:
        """Build a canonical Track, with this service's slot filled."""
        ...
