# tests/conftest.py
import pytest

from opening_analyzer.core.catalogue_indexer import OpeningCatalogue
from opening_analyzer.core.pattern_override import PatternOverride
from opening_analyzer.core.walkup_classifier import OpeningClassifier

RUY_LOPEZ_RECORDS = [
    {"name": "King's Pawn Game", "eco": "C20", "moves": "1. e4 e5"},
    {"name": "King's Knight Opening", "eco": "C40", "moves": "1. e4 e5 2. Nf3"},
    {"name": "King's Knight Opening: Normal Variation", "eco": "C44", "moves": "1. e4 e5 2. Nf3 Nc6"},
    {"name": "Ruy Lopez", "eco": "C60", "moves": "1. e4 e5 2. Nf3 Nc6 3. Bb5"},
    {"name": "Ruy Lopez: Berlin Defense", "eco": "C65", "moves": "1. e4 e5 2. Nf3 Nc6 3. Bb5 Nf6"},
    {"name": "Ruy Lopez: Berlin Defense, Rio Gambit Accepted", "eco": "C67",
     "moves": "1. e4 e5 2. Nf3 Nc6 3. Bb5 Nf6 4. O-O Nxe4"},
    {"name": "Queen's Gambit Declined", "eco": "D30", "moves": "1. d4 d5 2. c4 e6"},
    {"name": "Broken Line", "moves": "1. e4 Ke7"},
]

SAMPLE_GAME = (
    "1. e4 e5 2. Nf3 Nc6 3. Bb5 Nf6 4. O-O Nxe4 5. d4 Nd6 6. Bxc6 dxc6 "
    "7. dxe5 Nf5 8. Qxd8+ Kxd8 9. Nc3 Ke8 10. Rd1 Be7"
)


@pytest.fixture
def sample_game():
    return SAMPLE_GAME


@pytest.fixture
def catalogue_records():
    return [dict(record) for record in RUY_LOPEZ_RECORDS]


@pytest.fixture
def catalogue(catalogue_records):
    return OpeningCatalogue.from_records(catalogue_records)


@pytest.fixture
def empty_catalogue():
    return OpeningCatalogue.empty()


@pytest.fixture
def classifier(catalogue):
    return OpeningClassifier(catalogue, pattern_override=PatternOverride(catalogue))


@pytest.fixture
def empty_classifier(empty_catalogue):
    return OpeningClassifier(empty_catalogue, pattern_override=PatternOverride(empty_catalogue))
