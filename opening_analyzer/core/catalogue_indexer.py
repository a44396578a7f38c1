# opening_analyzer/core/catalogue_indexer.py
"""
Builds the in-memory opening catalogue and its reverse position index.

Each raw catalogue record is normalized into an immutable `OpeningEntry` by
replaying its move list through the same replayer used for played games. The
`OpeningCatalogue` then maps every canonical key an entry passes through (and
its own declared position, if any) back to that entry. The catalogue is built
once at startup and is read-only afterwards, so one instance can be shared by
any number of concurrent classifications.
"""
from collections import defaultdict
from typing import (Any, Dict, Iterable, Iterator, List, Mapping, Optional,
                    Sequence, Tuple)

import structlog

from opening_analyzer.core.move_replayer import (canonicalize_position,
                                                 replay_tokens, tokenize_moves)
from opening_analyzer.types import CanonicalKey, IndexedEntry, OpeningEntry

logger = structlog.get_logger(__name__)

# Record field aliases, tried in order. Lichess-style exports use `pgn` and `epd`.
_NAME_FIELDS: Tuple[str, ...] = ("name", "opening")
_MOVES_FIELDS: Tuple[str, ...] = ("moves", "pgn", "san")
_POSITION_FIELDS: Tuple[str, ...] = ("fen", "epd")
_ECO_FIELDS: Tuple[str, ...] = ("eco", "code")


def _first_field(record: Mapping[str, Any], names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = record.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def build_entry(
    name: str,
    moves: Optional[str] = None,
    eco: Optional[str] = None,
    fen: Optional[str] = None,
) -> OpeningEntry:
    """
    Normalizes one catalogue record into an `OpeningEntry`.

    The move list is tokenized and replayed. Only a move list that replays in
    full contributes canonical keys; a partially playable one is kept with its
    raw tokens so its name is still available to sequence matching.

    Args:
        name: The raw, possibly hierarchical opening name.
        moves: The entry's move list in any notation the replayer accepts.
        eco: An optional ECO-style classification code.
        fen: An optional FEN/EPD of the entry's terminal position.

    Returns:
        The immutable entry.
    """
    raw_tokens = tokenize_moves(moves or "")
    records = replay_tokens(raw_tokens)

    if raw_tokens and len(records) == len(raw_tokens):
        tokens = tuple(record.token for record in records)
        key_plies: Dict[CanonicalKey, int] = {}
        for record in records:
            # A position revisited later in the line keeps its first ply.
            key_plies.setdefault(record.canonical_key, record.ply)
    else:
        if raw_tokens:
            logger.debug(
                "Catalogue entry moves do not replay; keeping it unindexed.",
                opening=name, replayed=len(records), total=len(raw_tokens)
            )
        tokens = tuple(raw_tokens)
        key_plies = {}

    declared_key: Optional[CanonicalKey] = None
    if fen:
        try:
            declared_key = canonicalize_position(fen)
        except ValueError:
            logger.debug("Ignoring unparsable catalogue position.", opening=name, fen=fen)

    return OpeningEntry(
        name=name,
        eco=eco or None,
        moves=" ".join(tokens),
        tokens=tokens,
        key_plies=key_plies,
        declared_key=declared_key,
    )


def entry_from_record(record: Mapping[str, Any]) -> Optional[OpeningEntry]:
    """Builds an entry from a loosely keyed mapping, or None if it has no name."""
    lowered = {str(key).lower(): value for key, value in record.items()}
    name = _first_field(lowered, _NAME_FIELDS)
    if name is None:
        return None
    return build_entry(
        name=name,
        moves=_first_field(lowered, _MOVES_FIELDS),
        eco=_first_field(lowered, _ECO_FIELDS),
        fen=_first_field(lowered, _POSITION_FIELDS),
    )


class OpeningCatalogue:
    """
    An immutable collection of opening entries with a canonical-key index.

    The index maps a `CanonicalKey` to `IndexedEntry` pairs. The pair's ply is
    the ply within the entry at which the key is first reached, or None when the
    key only comes from the entry's declared terminal position.
    """

    def __init__(self, entries: Iterable[OpeningEntry]):
        self._entries: Tuple[OpeningEntry, ...] = tuple(entries)
        index: Dict[CanonicalKey, List[IndexedEntry]] = defaultdict(list)

        for entry in self._entries:
            seen = set()
            if entry.declared_key is not None:
                ply = entry.key_plies.get(entry.declared_key)
                index[entry.declared_key].append(IndexedEntry(entry=entry, ply=ply))
                seen.add(entry.declared_key)
            for key, ply in entry.key_plies.items():
                if key not in seen:
                    index[key].append(IndexedEntry(entry=entry, ply=ply))

        self._index: Dict[CanonicalKey, Tuple[IndexedEntry, ...]] = {
            key: tuple(pairs) for key, pairs in index.items()
        }

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "OpeningCatalogue":
        """Builds a catalogue from raw records, skipping records without a name."""
        entries = []
        skipped = 0
        for record in records:
            entry = entry_from_record(record)
            if entry is None:
                skipped += 1
                continue
            entries.append(entry)

        catalogue = cls(entries)
        logger.info(
            "Opening catalogue indexed.",
            entries=len(catalogue), indexed_keys=catalogue.key_count, skipped_records=skipped
        )
        return catalogue

    @classmethod
    def empty(cls) -> "OpeningCatalogue":
        return cls(())

    @property
    def entries(self) -> Tuple[OpeningEntry, ...]:
        return self._entries

    @property
    def key_count(self) -> int:
        return len(self._index)

    def candidates_at(self, key: CanonicalKey) -> Tuple[IndexedEntry, ...]:
        """Returns every (entry, ply) pair indexed under a canonical key."""
        return self._index.get(key, ())

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __iter__(self) -> Iterator[OpeningEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
