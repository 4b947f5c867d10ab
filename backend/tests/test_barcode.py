"""
Barcode burst detection tests.
"""

import pytest

from stockdesk.services.barcode_service import BarcodeBurstDetector, detect_scans
from stockdesk.validation import ValidationError


def burst(code, start=0, step=10):
    events = [(ch, start + i * step) for i, ch in enumerate(code)]
    events.append(("Enter", start + len(code) * step))
    return events


def test_fast_burst_is_a_scan():
    detector = BarcodeBurstDetector()
    assert detector.feed_many(burst("4006381333931")) == ["4006381333931"]
    assert detector.buffer == ""


def test_slow_typing_is_not_a_scan():
    detector = BarcodeBurstDetector()
    assert detector.feed_many(burst("4006381333931", step=120)) == []


def test_short_codes_are_ignored():
    detector = BarcodeBurstDetector(min_length=8)
    assert detector.feed_many(burst("1234567")) == []
    assert detector.feed_many(burst("12345678", start=1000)) == ["12345678"]


def test_slow_enter_discards_the_buffer():
    detector = BarcodeBurstDetector()
    events = burst("4006381333931")
    key, ts = events[-1]
    events[-1] = (key, ts + 500)
    assert detector.feed_many(events) == []
    assert detector.buffer == ""


def test_pause_mid_code_restarts_the_buffer():
    detector = BarcodeBurstDetector()
    events = [(ch, i * 10) for i, ch in enumerate("999")]
    events += burst("12345678", start=1000)
    assert detector.feed_many(events) == ["12345678"]


def test_modifier_keys_keep_the_burst_alive():
    detector = BarcodeBurstDetector()
    events = [("Shift", 0)] + burst("ABCDEFGH", start=5)
    assert detector.feed_many(events) == ["ABCDEFGH"]


def test_two_scans_back_to_back():
    detector = BarcodeBurstDetector()
    events = burst("11112222") + burst("33334444", start=100)
    assert detector.feed_many(events) == ["11112222", "33334444"]


def test_from_config():
    detector = BarcodeBurstDetector.from_config({"SCANNER_MAX_INTERVAL_MS": 30, "SCANNER_MIN_LENGTH": 4})
    assert detector.feed_many(burst("1234", step=20)) == ["1234"]
    assert detector.feed_many(burst("5678", start=1000, step=40)) == []


def test_detect_scans_rejects_malformed_events():
    with pytest.raises(ValidationError):
        detect_scans([["1", "soon"]], BarcodeBurstDetector())
    with pytest.raises(ValidationError):
        detect_scans("1234", BarcodeBurstDetector())


def test_scan_endpoint_resolves_products(client, admin_headers, make_product):
    soap = make_product("Soap", barcode="40063813")
    events = [list(e) for e in burst("40063813") + burst("99999999", start=500)]

    response = client.post("/api/products/scan", json={"events": events}, headers=admin_headers)

    assert response.status_code == 200
    scans = response.json["scans"]
    assert [s["code"] for s in scans] == ["40063813", "99999999"]
    assert scans[0]["product"]["id"] == soap.id
    assert scans[1]["product"] is None
