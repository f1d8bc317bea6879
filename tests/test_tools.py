from datetime import datetime, timezone
from unittest import mock
from urllib.parse import quote_plus, urlencode

import pytest

from xmrblocks.tools import (
    NetworkType,
    calc_median,
    chunks,
    get_blockchain_path,
    get_default_lmdb_folder,
    get_human_readable_timestamp,
    get_metric_prefix,
    make_difficulty,
    make_printable,
    parse_post_data,
    pause_execution,
    read_file,
    remove_bad_chars,
    remove_trailing_path_separator,
    timestamp_difference,
    timestamp_to_str_gm,
    timestamps_time_scale,
    url_decode,
    xmr_amount,
    xmr_amount_to_str,
)


@pytest.mark.parametrize("atomic", [1, 123456789, 2_500_000_000_000])
def test_xmr_amount_scales_back(atomic):
    assert xmr_amount(atomic) * 1e12 == pytest.approx(atomic)


def test_xmr_amount_to_str_zero_is_question_mark():
    assert xmr_amount_to_str(0) == "?"


def test_xmr_amount_to_str_zero_formatted_when_disabled():
    text = xmr_amount_to_str(0, "{:0.4f}", False)
    assert text != "?"
    assert float(text) == 0.0


def test_xmr_amount_to_str_matches_amount():
    amount = 2_500_000_000_000
    text = xmr_amount_to_str(amount, "{:0.3f}")
    assert float(text) == pytest.approx(xmr_amount(amount))
    assert len(text.split(".")[1]) == 3


def test_xmr_amount_to_str_default_precision():
    text = xmr_amount_to_str(1)
    assert len(text.split(".")[1]) == 12
    assert float(text) == pytest.approx(xmr_amount(1))


@pytest.mark.parametrize("path", ["/a/b/", "/a//", "relative/"])
def test_remove_trailing_separator_removes_one(path):
    result = remove_trailing_path_separator(path)
    assert result + "/" == path


@pytest.mark.parametrize("path", ["/a/b", "", "name"])
def test_remove_trailing_separator_leaves_others(path):
    assert remove_trailing_path_separator(path) == path


@pytest.mark.parametrize("ts", [0, 1397818193, 1600000000])
def test_timestamp_to_str_gm_round_trip(ts):
    text = timestamp_to_str_gm(ts)
    parsed = datetime.strptime(text, "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc)
    assert int(parsed.timestamp()) == ts


def test_timestamp_to_str_gm_custom_format():
    year = timestamp_to_str_gm(1600000000, "%Y")
    assert timestamp_to_str_gm(1600000000).startswith(year)


def test_timestamp_to_str_gm_too_long_is_empty():
    assert timestamp_to_str_gm(1600000000, "%Y" * 20) == ""


def test_human_readable_timestamp_unknown():
    assert get_human_readable_timestamp(1234567889) == "<unknown>"


def test_human_readable_timestamp_twelve_hour_clock():
    ts = 1600000000 + 15 * 3600
    text = get_human_readable_timestamp(ts)
    date_part, time_part = text.split(" ")
    assert date_part == timestamp_to_str_gm(ts, "%Y-%m-%d")
    hour = int(time_part.split(":")[0])
    assert 1 <= hour <= 12
    assert time_part[2:] == timestamp_to_str_gm(ts, "%H:%M:%S")[2:]


@pytest.mark.parametrize("t1,t2", [(1600000000, 1397818193), (100, 100), (5, 99999999)])
def test_timestamp_difference_recomposes(t1, t2):
    years, days, hours, minutes, seconds = timestamp_difference(t1, t2)
    total = years * 31536000 + days * 86400 + hours * 3600 + minutes * 60 + seconds
    assert total == abs(t1 - t2)
    assert days < 365 and hours < 24 and minutes < 60 and seconds < 60


def test_timestamp_difference_symmetric():
    assert timestamp_difference(10, 1000000) == timestamp_difference(1000000, 10)


def test_read_file_returns_content(tmp_path):
    target = tmp_path / "data.txt"
    target.write_text("10,20,30,60\n")
    assert read_file(target) == "10,20,30,60\n"


def test_read_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file(tmp_path / "missing.txt")


def test_time_scale_default_resolution():
    axis, scale = timestamps_time_scale([], 1397818193 + 8000)
    assert len(axis) == 80
    assert set(axis) == {"_"}
    assert scale * 80 == pytest.approx(8000)


def test_time_scale_marks_start():
    axis, _ = timestamps_time_scale([1000], 2000, 10, 1000)
    assert axis[1] == "*"
    assert axis.count("*") == 1


def test_time_scale_ignores_out_of_range():
    axis, _ = timestamps_time_scale([10, 5000], 2000, 10, 1000)
    assert axis == "_" * 10


@pytest.mark.parametrize("text", ["a b!c", "hex=0a1b&x=y", "ümlaut ok", ""])
def test_url_decode_round_trip(text):
    assert url_decode(quote_plus(text)) == text


@pytest.mark.parametrize("text", ["abc%", "abc%2", "%zz"])
def test_url_decode_rejects_bad_escape(text):
    with pytest.raises(ValueError):
        url_decode(text)


def test_parse_post_data_round_trip():
    fields = {"txdata": "abcdef0123", "action": "push", "note": "a b"}
    assert parse_post_data(urlencode(fields)) == fields


def test_parse_post_data_stops_at_item_without_equals():
    assert parse_post_data("a=1&b&c=3") == {"a": "1"}


def test_parse_post_data_bad_encoding_is_empty():
    assert parse_post_data("a=%zz") == {}


def test_make_printable_keeps_printable():
    assert make_printable("Monero signed tx set") == "Monero signed tx set"


def test_make_printable_low_control_octal():
    assert make_printable("\x00\x03") == "\\000\\003"


def test_make_printable_other_control_hex():
    assert make_printable(b"\x1f") == "0x1f"


def test_make_printable_high_byte_sign_extended():
    text = make_printable(b"\x80")
    assert text.startswith("0x")
    assert text.endswith("80")
    assert len(text) == 10


def test_calc_median_odd():
    assert calc_median([5, 1, 3]) == 3


def test_calc_median_does_not_modify_input():
    values = [9, 2, 7, 4]
    median = calc_median(values)
    assert values == [9, 2, 7, 4]
    assert sum(v < median for v in values) == len(values) // 2


def test_calc_median_empty():
    with pytest.raises(ValueError):
        calc_median([])


def test_chunks_reassemble():
    parts = list(chunks("abcdefg", 3))
    assert "".join(parts) == "abcdefg"
    assert all(len(p) == 3 for p in parts[:-1])
    assert 0 < len(parts[-1]) <= 3


def test_chunks_empty_yields_single_empty():
    assert list(chunks([], 4)) == [[]]


def test_chunks_bad_size():
    with pytest.raises(ValueError):
        list(chunks([1, 2], 0))


def test_remove_bad_chars_default():
    text = "ab c!d=/+\n"
    result = remove_bad_chars(text)
    assert all(c.isalnum() or c in "+/=" for c in result)
    assert result == "".join(c for c in text if c.isalnum() or c in "+/=")


def test_remove_bad_chars_custom_pattern():
    assert remove_bad_chars("a1b2c3", "[0-9]") == "abc"


def test_metric_prefix_small_value_unscaled():
    assert get_metric_prefix(999) == (999.0, "")


def test_metric_prefix_kilo():
    assert get_metric_prefix(5000) == (5.0, "k")


@pytest.mark.parametrize("value,prefix,power", [(2_000_000, "M", 2), (3 * 10**9, "G", 3), (7 * 10**12, "T", 4)])
def test_metric_prefix_scale(value, prefix, power):
    scaled, got = get_metric_prefix(value)
    assert got == prefix
    assert scaled * 1000**power == pytest.approx(value)


@pytest.mark.parametrize("low,high", [(0, 0), (12345, 1), (2**64 - 1, 77)])
def test_make_difficulty_words(low, high):
    diff = make_difficulty(low, high)
    assert diff & (2**64 - 1) == low
    assert diff >> 64 == high


@mock.patch("xmrblocks.tools.time.sleep")
def test_pause_execution(sleep, capsys):
    pause_execution(3)
    out = capsys.readouterr().out
    assert "Pausing now for 3 seconds: " in out
    assert out.count(".") == 3
    assert sleep.call_count == 3


def test_default_lmdb_folder_per_network():
    assert get_default_lmdb_folder(NetworkType.MAINNET, "/d") == "/d/lmdb"
    assert get_default_lmdb_folder(NetworkType.TESTNET, "/d") == "/d/testnet/lmdb"
    assert get_default_lmdb_folder(NetworkType.STAGENET, "/d") == "/d/stagenet/lmdb"


def test_blockchain_path_given(tmp_path):
    assert get_blockchain_path(str(tmp_path) + "/") == str(tmp_path)


def test_blockchain_path_default(tmp_path):
    (tmp_path / "testnet" / "lmdb").mkdir(parents=True)
    result = get_blockchain_path(None, NetworkType.TESTNET, tmp_path)
    assert result == get_default_lmdb_folder(NetworkType.TESTNET, tmp_path)


def test_blockchain_path_missing(tmp_path):
    with pytest.raises(NotADirectoryError):
        get_blockchain_path(tmp_path / "nothing")