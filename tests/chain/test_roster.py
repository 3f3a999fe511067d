"""Tests for the height-indexed roster history."""

import json

import pytest

from conftest import OP_A, OP_B, OP_C
from liveliness.chain.roster import RosterHistory, RosterSnapshot


class TestRosterHistory:

    def test_snapshot_in_effect_until_next(self):
        history = RosterHistory()
        history.set_operators(10, [OP_A])
        history.set_operators(20, [OP_A, OP_B])

        assert history.active_at(5) == []
        assert history.active_at(10) == [OP_A]
        assert history.active_at(19) == [OP_A]
        assert history.active_at(20) == [OP_A, OP_B]
        assert history.active_at(10**12) == [OP_A, OP_B]

    def test_out_of_order_insert_and_replace(self):
        history = RosterHistory()
        history.set_operators(20, [OP_B])
        history.set_operators(10, [OP_A])
        history.set_operators(20, [OP_C])
        assert history.active_at(15) == [OP_A]
        assert history.active_at(25) == [OP_C]

    def test_endpoint_lookup_is_pinned(self):
        moved = OP_A.model_copy(update={"endpoint": "http://op-a-new.test"})
        history = RosterHistory()
        history.set_operators(0, [OP_A])
        history.set_operators(30, [moved])
        assert history.endpoint_at(OP_A.address, 29) == OP_A.endpoint
        assert history.endpoint_at(OP_A.address.upper().replace("0X", "0x"), 30) == moved.endpoint

    def test_endpoint_for_unknown_operator(self):
        history = RosterHistory([RosterSnapshot(from_block=0, operators=[OP_A])])
        with pytest.raises(KeyError):
            history.endpoint_at(OP_B.address, 5)

    def test_from_file(self, tmp_dir):
        path = f"{tmp_dir}/roster.json"
        with open(path, "w") as f:
            json.dump({"snapshots": [
                {"fromBlock": 0, "operators": [
                    {"operatorAddress": OP_A.address, "endpoint": OP_A.endpoint},
                    {"operatorAddress": OP_B.address, "endpoint": OP_B.endpoint},
                ]},
            ]}, f)
        assert RosterHistory.from_file(path).active_at(40) == [OP_A, OP_B]
