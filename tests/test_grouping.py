"""Tests for library grouping, filtering, sorting and statistics."""

import itertools

import pytest

from bgg_library.grouping import filter_groups, group_library, library_stats, sort_groups

from tests.helpers import make_user_game


def _library():
    return [
        make_user_game(1, 100, "Catan"),
        make_user_game(2, 101, "Catan: Seafarers", is_expansion=True, base_game_bgg_id=100),
        make_user_game(3, 200, "Orphan Expansion", is_expansion=True, base_game_bgg_id=999),
    ]


def _shape(groups):
    return [(g.base_game.game.bgg_id, [e.game.bgg_id for e in g.expansions], g.total_count) for g in groups]


class TestGroupLibrary:
    def test_base_with_expansion_and_orphan(self) -> None:
        groups = group_library(_library())
        assert _shape(groups) == [(100, [101], 2), (200, [], 1)]

    def test_result_does_not_depend_on_input_order(self) -> None:
        expected = _shape(group_library(_library()))
        for permutation in itertools.permutations(_library()):
            assert _shape(group_library(list(permutation))) == expected

    def test_every_entry_appears_exactly_once(self) -> None:
        entries = _library() + [
            make_user_game(4, 300, "Chain Expansion", is_expansion=True, base_game_bgg_id=101),
            make_user_game(5, 400, "No Base Set", is_expansion=True),
        ]
        groups = group_library(entries)
        seen = [g.base_game.id for g in groups] + [e.id for g in groups for e in g.expansions]
        assert sorted(seen) == [1, 2, 3, 4, 5]
        assert all(g.total_count == 1 + len(g.expansions) for g in groups)

    def test_expansion_of_an_expansion_stays_standalone(self) -> None:
        entries = _library() + [
            make_user_game(4, 300, "Chain Expansion", is_expansion=True, base_game_bgg_id=101),
        ]
        shape = _shape(group_library(entries))
        assert (300, [], 1) in shape

    def test_sorted_by_display_title_case_insensitive(self) -> None:
        entries = [
            make_user_game(1, 1, "zebra"),
            make_user_game(2, 2, "Apple"),
            make_user_game(3, 3, "Mango", custom_title="banana"),
        ]
        titles = [g.base_game.game.bgg_id for g in group_library(entries)]
        assert titles == [2, 3, 1]

    def test_empty_library(self) -> None:
        assert group_library([]) == []


class TestFilterGroups:
    def _groups(self):
        entries = _library() + [make_user_game(4, 300, "Pandemic", status="wishlist")]
        return group_library(entries)

    def test_query_matches_display_title(self) -> None:
        result = filter_groups(self._groups(), query="cAtAn")
        assert [g.base_game.game.bgg_id for g in result] == [100]

    def test_status_matches_base_or_expansion(self) -> None:
        result = filter_groups(self._groups(), status="wishlist")
        assert [g.base_game.game.bgg_id for g in result] == [300]

    def test_game_types(self) -> None:
        groups = self._groups()
        assert [g.base_game.game.bgg_id for g in filter_groups(groups, game_type="base_games")] == [100, 300]
        assert [g.base_game.game.bgg_id for g in filter_groups(groups, game_type="expansions")] == [100, 200]

    @pytest.mark.parametrize("kwargs", [{"status": "borrowed"}, {"game_type": "dice"}])
    def test_invalid_filters(self, kwargs) -> None:
        with pytest.raises(ValueError):
            filter_groups(self._groups(), **kwargs)


class TestSortGroups:
    def _groups(self):
        return group_library([
            make_user_game(1, 1, "Alpha", rating=6.5, date_added="2024-01-03", personal_rating=4, min_players=3),
            make_user_game(2, 2, "Bravo", rating=8.0, date_added="2024-01-01", personal_rating=9, min_players=1),
            make_user_game(3, 3, "Charlie", rating=None, date_added="2024-01-02", min_players=2),
        ])

    def _ids(self, sort_by):
        return [g.base_game.game.bgg_id for g in sort_groups(self._groups(), sort_by)]

    def test_name(self) -> None:
        assert self._ids("name") == [1, 2, 3]

    def test_descending_sorts(self) -> None:
        assert self._ids("date_added") == [1, 3, 2]
        assert self._ids("bgg_rating") == [2, 1, 3]
        assert self._ids("personal_rating") == [2, 1, 3]

    def test_ascending_sort(self) -> None:
        assert self._ids("min_players") == [2, 3, 1]

    def test_unknown_option(self) -> None:
        with pytest.raises(ValueError):
            sort_groups(self._groups(), "weight")


class TestLibraryStats:
    def test_counts(self) -> None:
        entries = _library() + [make_user_game(4, 300, "Pandemic", status="wishlist")]
        stats = library_stats(entries)
        assert stats['total_entries'] == 4
        assert stats['total_owned'] == 3
        assert stats['owned_expansions'] == 2
        assert stats['owned_base_games'] == 1
        assert stats['by_status']['wishlist'] == 1
        assert stats['by_status']['on_order'] == 0
