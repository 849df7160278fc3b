"""Tests for moffittboard.core.ranking — pure ranking logic."""

from moffittboard.core.ranking import rank, rank_label, sort_leaderboard, top
from moffittboard.data.models import UserRecord


def _user(user_id, minutes):
    return UserRecord(id=user_id, email=f"u{user_id}@berkeley.edu", name=f"u{user_id}", time_spent=minutes)


class TestSortLeaderboard:
    def test_highest_first(self):
        users = [_user(1, 5), _user(2, 50), _user(3, 20)]
        assert [u.id for u in sort_leaderboard(users)] == [2, 3, 1]

    def test_ties_keep_input_order(self):
        users = [_user(7, 30), _user(3, 30), _user(5, 30)]
        assert [u.id for u in sort_leaderboard(users)] == [7, 3, 5]

    def test_does_not_mutate_input(self):
        users = [_user(1, 5), _user(2, 50)]
        sort_leaderboard(users)
        assert [u.id for u in users] == [1, 2]

    def test_empty(self):
        assert sort_leaderboard([]) == []


class TestRank:
    def test_distinct_totals_follow_descending_order(self):
        users = [_user(1, 10), _user(2, 40), _user(3, 25), _user(4, 0)]
        ranks = {u.id: rank(u.id, users) for u in users}
        assert ranks == {2: 1, 3: 2, 1: 3, 4: 4}

    def test_first_seen_wins_tie(self):
        users = [_user(1, 30), _user(2, 30), _user(3, 10)]
        assert [rank(u.id, users) for u in users] == [1, 2, 3]

    def test_tie_order_stable_across_calls(self):
        users = [_user(9, 30), _user(4, 30), _user(6, 30)]
        first = [rank(u.id, users) for u in users]
        second = [rank(u.id, users) for u in users]
        assert first == second == [1, 2, 3]

    def test_missing_id_gets_worst_rank(self):
        users = [_user(i, i * 10) for i in range(1, 6)]
        assert rank(99, users) == 6

    def test_missing_id_on_empty_board(self):
        assert rank(1, []) == 1

    def test_accepts_generator(self):
        users = (_user(i, i) for i in range(1, 4))
        assert rank(3, users) == 1


class TestTop:
    def test_limits_and_numbers_entries(self):
        users = [_user(1, 10), _user(2, 30), _user(3, 20)]
        result = top(users, 2)
        assert [(pos, u.id) for pos, u in result] == [(1, 2), (2, 3)]

    def test_limit_larger_than_board(self):
        assert len(top([_user(1, 1)], 10)) == 1

    def test_zero_limit(self):
        assert top([_user(1, 1)], 0) == []


class TestRankLabel:
    def test_podium(self):
        assert rank_label(1) == "1st"
        assert rank_label(2) == "2nd"
        assert rank_label(3) == "3rd"

    def test_th(self):
        assert rank_label(4) == "4th"
        assert rank_label(11) == "11th"
        assert rank_label(12) == "12th"
        assert rank_label(13) == "13th"
        assert rank_label(112) == "112th"

    def test_twenties(self):
        assert rank_label(21) == "21st"
        assert rank_label(22) == "22nd"
        assert rank_label(23) == "23rd"
