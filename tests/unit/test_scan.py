"""
Unit tests for scan processing.
Tests blank SSID filtering, strongest-record dedup and the merge sort.
"""

import random

import pytest

from dhcpcd_tray.wifi.adapter import ScanRecord
from dhcpcd_tray.wifi.scan import dedup_scans, list_sort, process_scans


def rec(ssid, bssid, strength=0):
    return ScanRecord(ssid=ssid, bssid=bssid, strength=strength)


def summary(records):
    return [(r.ssid, r.bssid, r.strength) for r in records]


class TestProcessScans:
    """Test the full filter + dedup + sort pipeline."""

    def test_reference_scenario(self):
        """Test duplicate SSIDs keep the strongest and blanks are dropped."""
        raw = [
            rec("A", "b1", 10),
            rec("A", "b2", 20),
            rec("", "b3", 5),
            rec("B", "b4", 1),
        ]
        assert summary(process_scans(raw)) == [("A", "b2", 20), ("B", "b4", 1)]

    def test_empty_input(self):
        assert process_scans([]) == []

    def test_only_blank_ssids(self):
        assert process_scans([rec("", "b1"), rec("", "b2")]) == []

    def test_single_record(self):
        assert summary(process_scans([rec("Solo", "b1", -40)])) == [("Solo", "b1", -40)]

    def test_tie_keeps_first_encountered(self):
        raw = [rec("Net", "first", -50), rec("Net", "second", -50)]
        assert summary(process_scans(raw)) == [("Net", "first", -50)]

    def test_stronger_later_record_wins(self):
        raw = [rec("Net", "weak", -80), rec("Other", "o", -60), rec("Net", "strong", -40)]
        result = process_scans(raw)
        assert summary(result) == [("Net", "strong", -40), ("Other", "o", -60)]

    def test_negative_dbm_strengths(self):
        """Test dBm values: -30 is stronger than -70."""
        raw = [rec("Cafe", "b1", -70), rec("Cafe", "b2", -30), rec("Cafe", "b3", -90)]
        assert summary(process_scans(raw)) == [("Cafe", "b2", -30)]

    def test_sorted_case_insensitively(self):
        raw = [rec("beta", "1"), rec("Alpha", "2"), rec("gamma", "3"), rec("Delta", "4")]
        assert [r.ssid for r in process_scans(raw)] == ["Alpha", "beta", "Delta", "gamma"]

    def test_case_variants_are_distinct_ssids(self):
        """Test SSIDs differing only by case both survive, in input order."""
        raw = [rec("home", "b1", -60), rec("HOME", "b2", -50)]
        assert [r.bssid for r in process_scans(raw)] == ["b1", "b2"]

    def test_sorted_duplicate_free_input_unchanged(self):
        raw = [rec("a", "1", 3), rec("B", "2", 2), rec("c", "3", 1)]
        assert process_scans(raw) == raw

    def test_input_list_not_modified(self):
        raw = [rec("B", "1"), rec("A", "2"), rec("", "3")]
        snapshot = list(raw)
        process_scans(raw)
        assert raw == snapshot

    def test_idempotent(self):
        raw = [rec("x", "1", 5), rec("X", "2", 1), rec("y", "3"), rec("x", "4", 9), rec("", "5")]
        once = process_scans(raw)
        assert process_scans(once) == once

    @pytest.mark.parametrize("seed", range(5))
    def test_properties_on_random_input(self, seed):
        """Test uniqueness, maximum strength and ordering on random lists."""
        rng = random.Random(seed)
        names = ["", "Home", "home", "Cafe", "Office", "guest", "Guest", "z"]
        raw = [
            rec(rng.choice(names), f"bssid{i}", rng.randint(-95, -20))
            for i in range(60)
        ]
        result = process_scans(raw)

        ssids = [r.ssid for r in result]
        assert "" not in ssids
        assert len(ssids) == len(set(ssids))
        for record in result:
            assert record.strength == max(
                r.strength for r in raw if r.ssid == record.ssid)
        keys = [s.lower() for s in ssids]
        assert keys == sorted(keys)


class TestDedupScans:
    """Test the filter + dedup pass on its own."""

    def test_survivors_keep_input_order(self):
        raw = [rec("b", "1", 1), rec("a", "2", 1), rec("b", "3", 5)]
        assert [r.bssid for r in dedup_scans(raw)] == ["2", "3"]


class TestListSort:
    """Test the bottom-up merge sort."""

    def test_empty(self):
        assert list_sort([]) == []

    def test_single(self):
        only = rec("x", "1")
        assert list_sort([only]) == [only]

    def test_already_sorted(self):
        raw = [rec(c, str(i)) for i, c in enumerate("abcdefg")]
        assert list_sort(raw) == raw

    def test_reverse_sorted(self):
        raw = [rec(c, str(i)) for i, c in enumerate("gfedcba")]
        assert [r.ssid for r in list_sort(raw)] == list("abcdefg")

    def test_odd_length(self):
        raw = [rec(c, str(i)) for i, c in enumerate("ecadb")]
        assert [r.ssid for r in list_sort(raw)] == list("abcde")

    def test_stable_on_equal_keys(self):
        raw = [rec("Net", "1"), rec("a", "2"), rec("NET", "3"), rec("net", "4")]
        assert [r.bssid for r in list_sort(raw)] == ["2", "1", "3", "4"]

    def test_matches_builtin_sort_on_long_list(self):
        rng = random.Random(42)
        raw = [rec(rng.choice("aAbBcCdD"), str(i)) for i in range(1000)]
        expected = sorted(raw, key=lambda r: r.ssid.lower())
        assert [r.bssid for r in list_sort(raw)] == [r.bssid for r in expected]
