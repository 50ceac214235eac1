"""Tests for the command line interface."""

from unittest.mock import MagicMock, patch

import pytest

from bgg_library.cli.main import build_parser, main
from bgg_library.error_handling import NotFound, SyncFailed
from bgg_library.models import SearchResult, SyncFailure, SyncOutcome

from tests.helpers import make_user_game


@pytest.fixture
def mock_service():
    with patch("bgg_library.cli.main.setup_logging"), \
            patch("bgg_library.cli.main.LibraryService") as service_cls:
        service = service_cls.return_value
        service.get_statistics.return_value = {
            'total_owned': 2, 'owned_base_games': 1, 'owned_expansions': 1,
            'by_status': {'owned': 2}, 'total_games_in_catalog': 2,
        }
        yield service


def _outcome(added=0, failed=0, failures=()):
    outcome = SyncOutcome(username="alice", total=added + failed, added=added, failed=failed,
                          failures=list(failures))
    outcome.summarize()
    return outcome


class TestParser:
    def test_sync_defaults(self) -> None:
        args = build_parser().parse_args(["sync", "alice", "user-1"])
        assert (args.passes, args.refresh, args.all_statuses) == (1, False, False)

    def test_invalid_status_rejected(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["add", "user-1", "13", "--status", "borrowed"])


class TestMain:
    def test_search(self, mock_service, capsys) -> None:
        mock_service.search_games.return_value = [SearchResult(13, "CATAN", 1995)]
        assert main(["search", "catan"]) == 0
        assert "CATAN (1995)" in capsys.readouterr().out
        mock_service.close.assert_called_once()

    def test_sync_prints_summary_and_failures(self, mock_service, capsys) -> None:
        mock_service.sync_collection.return_value = _outcome(
            added=2, failed=1, failures=[SyncFailure(5, "Game 5", "bad xml")])
        assert main(["sync", "alice", "user-1"]) == 0
        out = capsys.readouterr().out
        assert "2 added" in out
        assert "Game 5 (5) | bad xml" in out
        mock_service.sync_collection.assert_called_once_with("alice", "user-1", refresh_existing=False,
                                                             owned_only=True)

    def test_sync_passes_stop_once_converged(self, mock_service) -> None:
        mock_service.sync_collection.side_effect = [_outcome(added=5), _outcome(added=2), _outcome(added=0),
                                                    _outcome(added=0)]
        assert main(["sync", "alice", "user-1", "--passes", "4"]) == 0
        assert mock_service.sync_collection.call_count == 3

    def test_sync_failure_exit_code(self, mock_service, capsys) -> None:
        mock_service.sync_collection.side_effect = SyncFailed("Could not fetch. Please try again.")
        assert main(["sync", "alice", "user-1"]) == 1
        assert "Sync failed" in capsys.readouterr().out

    def test_package_errors_exit_code(self, mock_service) -> None:
        mock_service.add_game.side_effect = NotFound("BGG item 1 not found")
        assert main(["add", "user-1", "1"]) == 1

    def test_library_prints_groups(self, mock_service, capsys) -> None:
        base = make_user_game(1, 100, "Catan")
        expansion = make_user_game(2, 101, "Catan: Seafarers", is_expansion=True, base_game_bgg_id=100)
        group = MagicMock(base_game=base, expansions=[expansion], total_count=2)
        mock_service.group_library.return_value = [group]
        with patch("bgg_library.cli.main.filter_groups", side_effect=lambda g, **kw: g), \
                patch("bgg_library.cli.main.sort_groups", side_effect=lambda g, s: g):
            assert main(["library", "user-1"]) == 0
        out = capsys.readouterr().out
        assert "Catan | owned | BGG 100" in out
        assert "Catan: Seafarers" in out

    def test_link(self, mock_service, capsys) -> None:
        game = make_user_game(2, 101, "Catan: Seafarers", is_expansion=True, base_game_bgg_id=100).game
        mock_service.set_expansion_relationship.return_value = game
        assert main(["link", "101", "100"]) == 0
        mock_service.set_expansion_relationship.assert_called_once_with(101, True, 100)
        assert "expansion of BGG 100" in capsys.readouterr().out

    def test_stats_survive_errors(self, mock_service, capsys) -> None:
        mock_service.get_statistics.side_effect = NotFound("no such user")
        assert main(["stats", "user-1"]) == 0
        assert "Total owned games: 0" in capsys.readouterr().out

    def test_sync_stops_after_first_pass_when_nothing_new(self, mock_service) -> None:
        mock_service.sync_collection.return_value = _outcome(added=0)
        assert main(["sync", "alice", "user-1", "--passes", "3"]) == 0
        assert mock_service.sync_collection.call_count == 1

    def test_invalid_input_exit_code(self, mock_service, capsys) -> None:
        mock_service.sync_collection.side_effect = ValueError("A BGG username is required")
        assert main(["sync", " ", "user-1"]) == 1
        assert "A BGG username is required" in capsys.readouterr().out
