"""Tests for the probe executor, the system ping transport and the resolver.

Subprocesses and DNS are faked; nothing leaves the machine.
"""

from __future__ import annotations

import asyncio
import types

import dns.resolver
import pytest

from exceptions.monitoring import (
    DNSResolutionError,
    HostUnreachableError,
    ProbeTimeoutError,
    ProbeTransportError,
)
from monitoring.models import PingTarget
from monitoring.prober import HostnameResolver, ProbeExecutor, SubprocessPingTransport, TcpConnectTransport
from tests.conftest import ScriptedTransport


# ----------------------------------------------------------------------------
# Executor classification
# ----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "failure, expected",
    [
        (ProbeTimeoutError(), "timeout"),
        (HostUnreachableError(), "unreachable"),
        (DNSResolutionError(), "resolution failed"),
        (ProbeTransportError(), "transport error"),
        (RuntimeError("boom"), "transport error"),
    ],
)
async def test_failures_are_classified(target, failure, expected) -> None:
    executor = ProbeExecutor(ScriptedTransport({"1.1.1.1": [failure]}))

    outcome = await executor.probe(target, timeout=1.0)

    assert outcome.success is False
    assert outcome.latency_ms is None
    assert outcome.error == expected
    assert outcome.sequence == 0


async def test_success_carries_latency(target) -> None:
    executor = ProbeExecutor(ScriptedTransport({"1.1.1.1": [23.4]}))

    outcome = await executor.probe(target, timeout=1.0)

    assert outcome.success is True
    assert outcome.latency_ms == 23.4
    assert outcome.error is None
    assert outcome.target_id == target.id
    assert outcome.timestamp.tzinfo is not None


async def test_executor_enforces_timeout(target) -> None:
    executor = ProbeExecutor(ScriptedTransport(default=1.0, delay=5.0))

    outcome = await asyncio.wait_for(executor.probe(target, timeout=0.05), timeout=2.0)

    assert outcome.error == "timeout"


async def test_resolver_result_is_probed(target) -> None:
    class _Resolver:
        def __init__(self):
            self.asked = []

        async def resolve(self, hostname, timeout):
            self.asked.append(hostname)
            return "93.184.216.34"

    transport = ScriptedTransport({"93.184.216.34": [5.0]})
    resolver = _Resolver()
    executor = ProbeExecutor(transport, resolver)
    host = PingTarget(id="h", address="example.com")

    outcome = await executor.probe(host, timeout=1.0)

    assert outcome.success is True
    assert resolver.asked == ["example.com"]
    assert transport.calls == ["93.184.216.34"]
    # IP literals skip resolution
    await executor.probe(target, timeout=1.0)
    assert resolver.asked == ["example.com"]


# ----------------------------------------------------------------------------
# System ping transport
# ----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "output, expected",
    [
        ("64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=12.3 ms", 12.3),
        ("Reply from 8.8.8.8: bytes=32 time=15ms TTL=117", 15.0),
        ("Reply from 127.0.0.1: bytes=32 time<1ms TTL=128", 1.0),
        ("PING 1.1.1.1 (1.1.1.1): 56 data bytes\nRequest timeout for icmp_seq 0", None),
    ],
)
def test_parse_latency(output, expected) -> None:
    assert SubprocessPingTransport.parse_latency(output) == expected


@pytest.mark.parametrize(
    "output, expected",
    [
        ("ping: unknown host nosuch.invalid", "resolution failed"),
        ("ping: nosuch.invalid: Name or service not known", "resolution failed"),
        ("Ping request could not find host nosuch. Please check the name.", "resolution failed"),
        ("From 10.0.0.1 icmp_seq=1 Destination Host Unreachable", "unreachable"),
        ("1 packets transmitted, 0 received, 100% packet loss", "timeout"),
        ("Request timed out.", "timeout"),
        ("", "timeout"),
    ],
)
def test_classify_output(output, expected) -> None:
    assert SubprocessPingTransport.classify_output(output).value == expected


@pytest.mark.parametrize(
    "platform, expected",
    [
        ("linux", ["ping", "-c", "1", "-W", "2", "1.1.1.1"]),
        ("darwin", ["ping", "-c", "1", "-t", "2", "1.1.1.1"]),
        ("win32", ["ping", "-n", "1", "-w", "1500", "1.1.1.1"]),
    ],
)
def test_build_command(platform, expected) -> None:
    transport = SubprocessPingTransport(platform=platform)
    assert transport.build_command("1.1.1.1", 1.5) == expected


class _FakeProcess:
    def __init__(self, returncode: int, stdout: str, stderr: str = "") -> None:
        self._final_returncode = returncode
        self.returncode = None
        self._stdout = stdout.encode()
        self._stderr = stderr.encode()

    async def communicate(self):
        self.returncode = self._final_returncode
        return self._stdout, self._stderr

    def kill(self) -> None:
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode


def _patch_exec(monkeypatch, process: _FakeProcess, seen: list) -> None:
    async def fake_exec(*args, **kwargs):
        seen.append(args)
        return process

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)


async def test_subprocess_success(monkeypatch) -> None:
    seen = []
    _patch_exec(monkeypatch, _FakeProcess(0, "64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=8.25 ms"), seen)

    latency = await SubprocessPingTransport(platform="linux").measure("1.1.1.1", 2.0)

    assert latency == 8.25
    assert seen[0][0] == "ping"


async def test_subprocess_failures_raise_classified_errors(monkeypatch) -> None:
    _patch_exec(monkeypatch, _FakeProcess(2, "", "ping: nosuch.invalid: Name or service not known"), [])
    with pytest.raises(DNSResolutionError):
        await SubprocessPingTransport(platform="linux").measure("nosuch.invalid", 1.0)

    _patch_exec(monkeypatch, _FakeProcess(1, "1 packets transmitted, 0 received, 100% packet loss"), [])
    with pytest.raises(ProbeTimeoutError):
        await SubprocessPingTransport(platform="linux").measure("10.255.255.1", 1.0)


async def test_windows_unreachable_reply_with_exit_code_zero(monkeypatch) -> None:
    output = (
        "Pinging 10.0.0.9 with 32 bytes of data:\r\n"
        "Reply from 10.0.0.1: Destination host unreachable.\r\n"
    )
    _patch_exec(monkeypatch, _FakeProcess(0, output), [])

    with pytest.raises(HostUnreachableError) as info:
        await SubprocessPingTransport(platform="win32").measure("10.0.0.9", 1.0)
    assert info.value.kind.value == "unreachable"


async def test_missing_ping_binary_is_a_transport_error(monkeypatch) -> None:
    async def fake_exec(*args, **kwargs):
        raise FileNotFoundError("ping")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    with pytest.raises(ProbeTransportError) as info:
        await SubprocessPingTransport().measure("1.1.1.1", 1.0)
    assert info.value.kind.value == "transport error"


# ----------------------------------------------------------------------------
# Hostname resolver
# ----------------------------------------------------------------------------

class _FakeDnsResolver:
    def __init__(self, answers=None, error=None):
        self.answers = answers or {}
        self.error = error

    async def resolve(self, hostname, record_type, lifetime=None):
        if self.error is not None:
            raise self.error
        if record_type not in self.answers:
            raise dns.resolver.NoAnswer()
        return [types.SimpleNamespace(to_text=lambda v=v: v) for v in self.answers[record_type]]


async def test_resolver_prefers_ipv4_then_falls_back_to_ipv6() -> None:
    v4 = HostnameResolver(_FakeDnsResolver({"A": ["192.0.2.1"], "AAAA": ["2001:db8::1"]}))
    v6 = HostnameResolver(_FakeDnsResolver({"AAAA": ["2001:db8::1"]}))

    assert await v4.resolve("example.com", 1.0) == "192.0.2.1"
    assert await v6.resolve("example.com", 1.0) == "2001:db8::1"


async def test_resolver_errors_become_resolution_failures() -> None:
    nx = HostnameResolver(_FakeDnsResolver(error=dns.resolver.NXDOMAIN()))
    empty = HostnameResolver(_FakeDnsResolver({}))

    with pytest.raises(DNSResolutionError):
        await nx.resolve("nosuch.invalid", 1.0)
    with pytest.raises(DNSResolutionError):
        await empty.resolve("example.com", 1.0)


# ----------------------------------------------------------------------------
# TCP connect transport (local sockets only)
# ----------------------------------------------------------------------------

async def test_tcp_connect_to_listening_port() -> None:
    server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]

    try:
        latency = await TcpConnectTransport(port=port).measure("127.0.0.1", 1.0)
    finally:
        server.close()
        await server.wait_closed()

    assert latency >= 0.0


async def test_tcp_refused_counts_as_reply() -> None:
    server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    latency = await TcpConnectTransport(port=port).measure("127.0.0.1", 1.0)

    assert latency >= 0.0
