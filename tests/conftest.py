"""
Shared fixtures for the watchlist screening tests
"""

import uuid
from datetime import date

import pytest

from watchlist.candidate_index import CandidateIndex
from watchlist.checker import Checker
from watchlist.config_manager import ConfigManager
from watchlist.records import DobRange, PersonRecord, RecordSource, RecordType


def make_record(
    full_name: str = "John Doe",
    aliases=(),
    dob_ranges=(),
    id: str = None,
    entry_id: str = "10000000000",
    source: RecordSource = RecordSource.SANCTION,
    type: RecordType = RecordType.INDIVIDUAL,
) -> PersonRecord:
    """Build a PersonRecord with sensible defaults for tests"""
    return PersonRecord(
        id=id or str(uuid.uuid4()),
        entry_id=entry_id,
        source=source,
        type=type,
        full_name=full_name,
        aliases=tuple(aliases),
        dob_ranges=tuple(dob_ranges),
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests independent of any config.yaml in the working directory"""
    monkeypatch.setenv("WATCHLIST_CONFIG", str(tmp_path / "absent-config.yaml"))
    ConfigManager.reset_instance()
    yield
    ConfigManager.reset_instance()


@pytest.fixture
def config():
    return ConfigManager(config_path=None)


@pytest.fixture
def watchlist_records():
    """The reference watchlist: several Doe variants, an accented entry, DOB-bound entries"""
    return [
        make_record(
            id="cf347252-d1bf-4370-ae7e-611308e36dc8",
            entry_id="20202020202",
            full_name="John Michael Doe",
            aliases=["J. M. Doe", "John M. Doe", "J.M.D.", "Johnny Doe"],
        ),
        make_record(full_name="John Doe", aliases=["J. Doe", "Jon Doe"], source=RecordSource.PEP),
        make_record(full_name="Jonathan M. Doe", aliases=["Jon M. Doe", "J. M. Doe", "J.D.", "Johnathan Doe"]),
        make_record(full_name="Jane Marie Doe", aliases=["J. M. Doe", "Jane M. Doe", "Janie"]),
        make_record(full_name="João Miguel Dó", aliases=["Joao M. Do", "J. M. Dó"], type=RecordType.ENTITY),
        make_record(
            full_name="John Doe",
            aliases=["J. Doe", "Jon Doe"],
            dob_ranges=[DobRange(date(2021, 1, 1), date(2021, 12, 31))],
        ),
        make_record(
            id="cf347252-d1bf-4370-ae7e-611308e36dc9",
            entry_id="30303030303",
            full_name="John Doe",
            aliases=["J. Doe", "Jon Doe"],
            dob_ranges=[DobRange(date(2020, 1, 1), date(2020, 12, 31))],
        ),
    ]


@pytest.fixture
def index(watchlist_records, config):
    idx = CandidateIndex.build(watchlist_records, config)
    yield idx
    idx.close()


@pytest.fixture
def checker(index, config):
    return Checker(index, config=config)
