import pytest

from xmrblocks.options import DESCRIPTION, CmdLineOptions, build_parser


def test_defaults():
    opts = CmdLineOptions([])
    assert opts.get_option("port") == "8081"
    assert opts.get_option("bindaddr") == "0.0.0.0"
    assert opts.get_option("no-blocks-on-index") == "10"
    assert opts.get_option("mempool-info-timeout") == "5000"
    assert opts.get_option("deamon-url") == "http:://127.0.0.1:18081"
    assert opts.get_option("concurrency") == 0
    assert opts.get_option("testnet") is False


def test_options_without_default_are_absent():
    opts = CmdLineOptions([])
    assert opts.get_option("bc-path") is None
    assert opts.get_option("ssl-crt-file") is None


def test_unknown_name_is_absent():
    assert CmdLineOptions([]).get_option("no-such-option") is None


def test_implicit_bool_flag():
    opts = CmdLineOptions(["-t", "--enable-json-api"])
    assert opts.get_option("testnet") is True
    assert opts.get_option("enable-json-api") is True
    assert opts.get_option("stagenet") is False


@pytest.mark.parametrize("text, expected", [("false", False), ("true", True), ("0", False)])
def test_explicit_bool_value(text, expected):
    opts = CmdLineOptions([f"--enable-pusher={text}"])
    assert opts.get_option("enable-pusher") is expected


def test_invalid_bool_value():
    with pytest.raises(ValueError):
        CmdLineOptions(["--enable-pusher=maybe"])


def test_string_and_numeric_values():
    opts = CmdLineOptions(["-b", "/tmp/lmdb", "-p", "9000", "-c", "4"])
    assert opts.get_option("bc-path") == "/tmp/lmdb"
    assert opts.get_option("port") == "9000"
    assert opts.get_option("concurrency") == 4


def test_negative_concurrency_rejected():
    with pytest.raises(ValueError):
        CmdLineOptions(["--concurrency", "-3"])


def test_unknown_option_raises():
    with pytest.raises(ValueError):
        CmdLineOptions(["--bogus"])


def test_positional_argument_raises():
    with pytest.raises(ValueError):
        CmdLineOptions(["abc"])


def test_help_prints_description(capsys):
    opts = CmdLineOptions(["--help"])
    assert opts.get_option("help") is True
    assert DESCRIPTION in capsys.readouterr().out


def test_no_help_prints_nothing(capsys):
    CmdLineOptions(["-s"])
    assert capsys.readouterr().out == ""


def test_parser_description():
    assert build_parser().description == DESCRIPTION