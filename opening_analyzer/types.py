# opening_analyzer/types.py
"""
A central module for shared data structures and service interfaces (Protocols).
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import (Any, Awaitable, Callable, Dict, List, Optional, Protocol,
                    Sequence, Tuple, TypeAlias)

CanonicalKey: TypeAlias = str
MoveToken: TypeAlias = str

class AnalysisStatus(str, Enum):
    MATCHED = "matched"; SEQUENCE_FALLBACK = "sequence_fallback"
    PATTERN_OVERRIDE = "pattern_override"; FIRST_MOVE_FALLBACK = "first_move_fallback"
    NO_MATCH = "no_match"; NO_MOVES = "no_moves"

class MatchSource(str, Enum):
    POSITION = "position"; SEQUENCE = "sequence"; PATTERN = "pattern"; FIRST_MOVE = "first_move"

# --- Replay and catalogue contracts ---

@dataclass(frozen=True, slots=True)
class PlyRecord:
    """One successfully applied half-move and the position it produced."""
    ply: int; token: MoveToken; raw_token: str; uci: str
    canonical_key: CanonicalKey; played_prefix: Tuple[MoveToken, ...]

@dataclass(frozen=True, eq=False)
class OpeningEntry:
    """
    One catalogue record, immutable after load.

    `tokens` holds the normalized SAN of the entry's own moves and `key_plies`
    maps each canonical key reached while replaying them to the first ply at
    which it is reached. Entries whose moves do not replay keep their raw
    tokens and an empty `key_plies`.
    """
    name: str; eco: Optional[str]; moves: str
    tokens: Tuple[MoveToken, ...]
    key_plies: Dict[CanonicalKey, int] = field(default_factory=dict, repr=False)
    declared_key: Optional[CanonicalKey] = None

    @property
    def is_indexed(self) -> bool:
        return bool(self.key_plies) or self.declared_key is not None

@dataclass(frozen=True, slots=True)
class IndexedEntry:
    entry: OpeningEntry; ply: Optional[int]

@dataclass(frozen=True, slots=True)
class MatchCandidate:
    entry: OpeningEntry; raw_name: str; entry_tokens: Tuple[MoveToken, ...]
    ordering_key: Tuple[float, ...]; set_match_fraction: float; set_matched: bool

# --- Result contracts ---

@dataclass(frozen=True)
class PlyClassification:
    ply: int; sequence_text: str; name: Optional[str]; eco: Optional[str]
    path: List[str]; canonical_key: CanonicalKey; source: Optional[MatchSource]
    entry: Optional[OpeningEntry] = field(default=None, repr=False, compare=False)

@dataclass(frozen=True, slots=True)
class LevelDetail:
    """
    Diagnostic view of one walk-up level.

    `played_indices[i]` is the 0-based index in the played game at which the
    entry's i-th token was found, or None when the game never played it. Any
    deviation from `0, 1, 2, ...` marks a transposition.
    """
    ply: int; name: str; eco: Optional[str]; entry_tokens: Tuple[MoveToken, ...]
    played_indices: Tuple[Optional[int], ...]; is_transposition: bool
    set_match_fraction: float; ordering_key: Tuple[float, ...]

@dataclass(frozen=True)
class Diagnostics:
    anchor_ply: Optional[int]; levels: List[LevelDetail]
    candidate_counts: Dict[int, int]; pattern_label: Optional[str] = None

@dataclass(frozen=True)
class AnalysisResult:
    """The engine's answer for one game. Produced fresh per call."""
    status: AnalysisStatus; name: Optional[str]; eco: Optional[str]
    path: List[str]; progression: List[PlyClassification]
    plies_replayed: int = 0; anchor_ply: Optional[int] = None
    source: Optional[MatchSource] = None
    entry: Optional[OpeningEntry] = field(default=None, repr=False, compare=False)
    diagnostics: Optional[Diagnostics] = None

    @property
    def matched(self) -> bool:
        """True only when a catalogue entry backs the reported name."""
        return self.entry is not None

    def to_dict(self) -> Dict[str, Any]:
        """Returns a JSON-serializable view of the result."""
        return {
            "status": self.status.value,
            "name": self.name,
            "eco": self.eco,
            "path": list(self.path),
            "source": self.source.value if self.source else None,
            "anchor_ply": self.anchor_ply,
            "plies_replayed": self.plies_replayed,
            "progression": [
                {
                    "ply": p.ply, "sequence": p.sequence_text, "name": p.name,
                    "eco": p.eco, "path": list(p.path), "canonical_key": p.canonical_key,
                    "source": p.source.value if p.source else None,
                }
                for p in self.progression
            ],
            "diagnostics": asdict(self.diagnostics) if self.diagnostics else None,
        }


# --- PROTOCOLS: Abstract Interfaces ---

class PatternDetector(Protocol):
    """Decides whether a game's opening plies show a diagnostic move pattern."""
    def __call__(self, records: Sequence[PlyRecord], window_plies: int) -> bool: ...

ResultCallback = Callable[[AnalysisResult], Awaitable[None]]
