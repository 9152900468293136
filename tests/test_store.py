"""
Tests for the record store.
"""
import json
from datetime import datetime
from pathlib import Path

import pytest

from tradejournal.store import InMemoryRepository, JsonFileRepository
from tradejournal.types import AccountStatus, Payout, PropAccount, Trade


@pytest.fixture
def repo(tmp_path: Path) -> JsonFileRepository:
    return JsonFileRepository(tmp_path / "journal", "Jane Doe@example.com")


def sample_trade() -> Trade:
    return Trade(
        id="t1",
        account_id="a1",
        symbol="NQ",
        entry_date=datetime(2025, 3, 3, 14, 30),
        exit_date=datetime(2025, 3, 3, 15),
        pnl=250.0,
        mistakes=["FOMO"],
    )


def sample_account() -> PropAccount:
    return PropAccount(
        id="a1",
        firm_name="Apex",
        account_size=50000,
        cost=40.0,
        status=AccountStatus.FUNDED,
        date_added=datetime(2025, 1, 1),
        payouts=[Payout(id="p1", amount=1000.0, date=datetime(2025, 2, 1))],
    )


def test_file_names_are_derived_from_user(repo: JsonFileRepository) -> None:
    assert repo.trades_path.name.startswith("jane_doe_at_example.com-")
    assert repo.trades_path.name.endswith("_trades.json")
    assert repo.accounts_path.name.endswith("_accounts.json")
    assert repo.trades_path.name[: -len("_trades.json")] == repo.accounts_path.name[: -len("_accounts.json")]


def test_similar_user_names_get_separate_files(tmp_path: Path) -> None:
    spaced = JsonFileRepository(tmp_path, "Jane Doe")
    underscored = JsonFileRepository(tmp_path, "jane_doe")
    assert spaced.trades_path != underscored.trades_path

    spaced.save_trades([sample_trade()])
    assert underscored.load_trades() == []
    assert JsonFileRepository(tmp_path, "Jane Doe").load_trades() == [sample_trade()]


def test_missing_files_load_empty(repo: JsonFileRepository) -> None:
    assert repo.load_trades() == []
    assert repo.load_accounts() == []


def test_save_and_load_trades(repo: JsonFileRepository) -> None:
    repo.save_trades([sample_trade()])
    assert repo.load_trades() == [sample_trade()]


def test_save_and_load_accounts(repo: JsonFileRepository) -> None:
    repo.save_accounts([sample_account()])
    [account] = repo.load_accounts()
    assert account.firm_name == "Apex"
    assert account.total_payouts == 1000.0
    assert account.payouts[0].date == datetime(2025, 2, 1)


def test_saved_files_use_camel_case(repo: JsonFileRepository) -> None:
    repo.save_trades([sample_trade()])
    repo.save_accounts([sample_account()])

    [trade] = json.loads(repo.trades_path.read_text())
    assert trade["accountId"] == "a1"
    assert trade["outcome"] == "WIN"

    [account] = json.loads(repo.accounts_path.read_text())
    assert account["firmName"] == "Apex"
    assert account["totalPayouts"] == 1000.0


def test_corrupt_file_loads_empty(repo: JsonFileRepository) -> None:
    repo.data_dir.mkdir(parents=True)
    repo.trades_path.write_text("{not json")
    assert repo.load_trades() == []


def test_non_utf8_file_loads_empty(repo: JsonFileRepository) -> None:
    repo.data_dir.mkdir(parents=True)
    repo.trades_path.write_bytes(b"\xff\xfe[1,2]")
    assert repo.load_trades() == []


def test_deeply_nested_json_loads_empty(repo: JsonFileRepository) -> None:
    repo.data_dir.mkdir(parents=True)
    repo.accounts_path.write_text("[" * 100000)
    assert repo.load_accounts() == []


def test_invalid_records_load_empty(repo: JsonFileRepository) -> None:
    repo.data_dir.mkdir(parents=True)
    repo.accounts_path.write_text(json.dumps([{"id": "x"}]))
    assert repo.load_accounts() == []


def test_non_list_payload_loads_empty(repo: JsonFileRepository) -> None:
    repo.data_dir.mkdir(parents=True)
    repo.trades_path.write_text(json.dumps({"trades": []}))
    assert repo.load_trades() == []


def test_users_are_isolated(tmp_path: Path) -> None:
    alice = JsonFileRepository(tmp_path, "alice")
    bob = JsonFileRepository(tmp_path, "bob")
    alice.save_trades([sample_trade()])
    assert bob.load_trades() == []
    assert len(alice.load_trades()) == 1


def test_in_memory_repository_copies_collections() -> None:
    trades = [sample_trade()]
    repo = InMemoryRepository(trades=trades)
    loaded = repo.load_trades()
    loaded.clear()
    assert repo.load_trades() == trades

    repo.save_accounts([sample_account()])
    assert [a.id for a in repo.load_accounts()] == ["a1"]
