import pytest

from netmon.datatype import TCP, UDP, Protocol
from netmon.parser import (
    is_connection_line,
    parse_addr_port,
    parse_connection_line,
    parse_nettop_output,
    parse_process_line,
    split_name_pid,
)

from .helpers import SAMPLE_REPORT


class TestSplitNamePid:

    @pytest.mark.parametrize('identifier, expected', [
        ("firefox.1234", ("firefox", 1234)),
        ("com.apple.WebKit.1234", ("com.apple.WebKit", 1234)),
        ("Microsoft Teams.1263", ("Microsoft Teams", 1263)),
        ("kernel_task", ("kernel_task", 0)),
        ("com.apple.Safari", ("com.apple.Safari", 0)),
        ("weird.12ab", ("weird.12ab", 0)),
        ("negative.-5", ("negative.-5", 0)),
        ("python3.11.42", ("python3.11", 42)),
        ("app.+42", ("app", 42)),
        ("app.++42", ("app.++42", 0)),
    ])
    def test_split(self, identifier, expected):
        assert split_name_pid(identifier) == expected

    def test_pid_out_of_range(self):
        assert split_name_pid("big.99999999999") == ("big.99999999999", 0)


class TestParseAddrPort:

    @pytest.mark.parametrize('text, expected', [
        ("192.168.1.1:443", ("192.168.1.1", 443)),
        ("::1.8021", ("::1", 8021)),
        ("*:*", ("*", 0)),
        ("*.*", ("*", 0)),
        ("*:5353", ("*", 5353)),
        ("*.5353", ("*", 5353)),
        ("fe80::1c9b:e73b:41dd:4aa1%en7.49152", ("fe80::1c9b:e73b:41dd:4aa1%en7", 49152)),
        (" 10.0.0.1:22 ", ("10.0.0.1", 22)),
        ("localhost", ("localhost", 0)),
        ("host:+443", ("host", 443)),
        ("host:+", ("host:+", 0)),
    ])
    def test_parse(self, text, expected):
        assert parse_addr_port(text) == expected

    def test_port_must_fit_16_bits(self):
        # neither "70000" nor "1:70000" is a port
        assert parse_addr_port("10.0.0.1:70000") == ("10.0.0.1:70000", 0)

    def test_no_numeric_suffix(self):
        assert parse_addr_port("host:http") == ("host:http", 0)


class TestLineClassification:

    @pytest.mark.parametrize('first_field', [
        "tcp4 192.168.0.227:50448<->194.15.120.159:1194",
        "tcp6 ::1.8021<->::1.50000",
        "udp4 *:5353<->*:*",
        "udp6 *.5353<->*.*",
    ])
    def test_connection_lines(self, first_field):
        assert is_connection_line(first_field)

    @pytest.mark.parametrize('first_field', [
        "firefox.1234",
        "Microsoft Teams.1263",
        "tcp4",
        "tcp4.99",
        "icmp4 1.2.3.4<->5.6.7.8",
    ])
    def test_process_lines(self, first_field):
        assert not is_connection_line(first_field)


class TestParseLines:

    def test_process_line(self):
        proc = parse_process_line("apsd.376,7387,24329,")
        assert proc.name == "apsd"
        assert proc.pid == 376
        assert proc.bytes_in == 7387
        assert proc.bytes_out == 24329
        assert proc.connections == []
        assert proc.rate_in == 0.0

    def test_malformed_counters_default_to_zero(self):
        proc = parse_process_line("apsd.376,lots,-1")
        assert (proc.bytes_in, proc.bytes_out) == (0, 0)

    def test_counter_with_plus_sign(self):
        proc = parse_process_line("apsd.376,+5,+0")
        assert (proc.bytes_in, proc.bytes_out) == (5, 0)

    def test_missing_counters_default_to_zero(self):
        proc = parse_process_line("apsd.376")
        assert (proc.bytes_in, proc.bytes_out) == (0, 0)

    def test_empty_name_is_rejected(self):
        assert parse_process_line(".376,10,10,") is None
        assert parse_process_line(",10,10,") is None

    def test_connection_line(self):
        conn = parse_connection_line("tcp4 192.168.0.227:61859<->17.57.146.59:5223,7387,24329,")
        assert conn.protocol == TCP
        assert (conn.local_addr, conn.local_port) == ("192.168.0.227", 61859)
        assert (conn.remote_addr, conn.remote_port) == ("17.57.146.59", 5223)
        assert (conn.bytes_in, conn.bytes_out) == (7387, 24329)
        assert conn.hostname is None
        assert conn.state == ""

    def test_connection_protocols(self):
        assert parse_connection_line("udp6 *.5353<->*.*,1,2,").protocol == UDP
        other = parse_connection_line("icmp4 1.2.3.4<->5.6.7.8,1,2,")
        assert other.protocol == Protocol.other("icmp4")
        assert str(other.protocol) == "icmp4"

    def test_connection_without_separator(self):
        assert parse_connection_line("tcp4 192.168.0.1:80,1,2,") is None


class TestParseNettopOutput:

    def test_full_report(self):
        processes = parse_nettop_output(SAMPLE_REPORT)
        assert [p.name for p in processes] == ["apsd", "mDNSResponder"]

        apsd, mdns = processes
        assert apsd.pid == 376
        assert len(apsd.connections) == 1
        assert apsd.connections[0].remote_addr == "17.57.146.59"
        assert apsd.connections[0].remote_port == 5223

        assert mdns.pid == 417
        assert len(mdns.connections) == 2
        assert all(c.remote_addr == "*" and c.remote_port == 0 for c in mdns.connections)

    def test_parsing_is_idempotent(self):
        assert parse_nettop_output(SAMPLE_REPORT) == parse_nettop_output(SAMPLE_REPORT)

    def test_no_header_gives_empty_list(self):
        assert parse_nettop_output("apsd.376,7387,24329,\n") == []
        assert parse_nettop_output("") == []

    def test_lines_before_header_are_ignored(self):
        report = "nettop: some banner\n" + SAMPLE_REPORT
        assert len(parse_nettop_output(report)) == 2

    def test_idle_processes_are_dropped(self):
        report = (
            ",bytes_in,bytes_out,\n"
            "idle.1,0,0,\n"
            "busy.2,5,0,\n"
            "quiet.3,0,0,\n"
            "tcp4 127.0.0.1:1<->127.0.0.1:2,0,0,\n"
            "last_idle.4,0,0,\n"
        )
        assert [p.name for p in parse_nettop_output(report)] == ["busy", "quiet"]

    def test_orphan_connections_are_dropped(self):
        report = (
            ",bytes_in,bytes_out,\n"
            "tcp4 127.0.0.1:1<->127.0.0.1:2,10,10,\n"
            "app.7,1,1,\n"
        )
        processes = parse_nettop_output(report)
        assert len(processes) == 1
        assert processes[0].connections == []

    def test_connections_after_nameless_process_are_dropped(self):
        report = (
            ",bytes_in,bytes_out,\n"
            ".7,10,10,\n"
            "tcp4 127.0.0.1:1<->127.0.0.1:2,10,10,\n"
        )
        assert parse_nettop_output(report) == []

    def test_blank_lines_and_bad_fields(self):
        report = (
            ",bytes_in,bytes_out,\n"
            "\n"
            "app.7,abc,12,\n"
            "   \n"
            "tcp4 127.0.0.1:1<->127.0.0.1:2,x,y,\n"
        )
        (proc,) = parse_nettop_output(report)
        assert (proc.bytes_in, proc.bytes_out) == (0, 12)
        assert (proc.connections[0].bytes_in, proc.connections[0].bytes_out) == (0, 0)

    def test_never_emits_empty_names(self):
        report = ",bytes_in,bytes_out,\n.1,5,5,\n,5,5,\nok.2,5,5,\n"
        assert all(p.name for p in parse_nettop_output(report))
