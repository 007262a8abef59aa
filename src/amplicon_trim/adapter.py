"""
Adapter prefix table.

Read-through leaves a prefix of the adapter at the 3' end of a read; how
much of the adapter is present depends on how far the read extends past
the fragment. The table lists every candidate prefix, longest first.
"""

import logging
from typing import Iterator, Tuple

from .sequencing_read import reverse_complement

logger = logging.getLogger(__name__)

VALID_BASES = set("ACGTN")


class AdapterPrefixTable:
    """
    Ordered adapter prefixes to search for at read ends.

    Holds every prefix of the adapter and every prefix of its reverse
    complement, merged in strictly non-increasing length order. At equal
    length the adapter prefix precedes the reverse-complement prefix.
    Duplicates are collapsed, so an adapter of length L yields at most
    2L entries.

    Parameters
    ----------
    adapter : str
        Adapter sequence, e.g. ``AGATCGGAAGAG``.

    Examples
    --------
    >>> table = AdapterPrefixTable("AGAT")
    >>> table.prefixes[:3]
    ('AGAT', 'ATCT', 'AGA')
    >>> len(table)  # the single-base prefixes collapse
    7
    """

    def __init__(self, adapter: str):
        adapter = adapter.upper()
        if not adapter:
            raise ValueError("Adapter sequence must not be empty")
        invalid = set(adapter) - VALID_BASES
        if invalid:
            raise ValueError(f"Adapter sequence contains invalid bases: {sorted(invalid)}")

        self.adapter = adapter
        self.adapter_rc = reverse_complement(adapter)

        prefixes = []
        seen = set()
        for length in range(len(adapter), 0, -1):
            for seq in (adapter, self.adapter_rc):
                prefix = seq[:length]
                if prefix not in seen:
                    seen.add(prefix)
                    prefixes.append(prefix)

        self._prefixes: Tuple[str, ...] = tuple(prefixes)
        logger.debug(f"Indexed {len(self._prefixes)} adapter prefixes for {adapter}")

    @property
    def prefixes(self) -> Tuple[str, ...]:
        return self._prefixes

    def __iter__(self) -> Iterator[str]:
        return iter(self._prefixes)

    def __len__(self) -> int:
        return len(self._prefixes)

    def __repr__(self) -> str:
        return f"AdapterPrefixTable(adapter={self.adapter!r}, n_prefixes={len(self)})"
