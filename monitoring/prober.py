"""
============================================================================
PING MONITOR - PROBE EXECUTOR & TRANSPORTS
============================================================================
Performs a single probe against one target and classifies the outcome.

Architecture
------------
ProbeExecutor                 ← enforces the timeout, never raises
├── HostnameResolver          ← optional dnspython lookup (A, then AAAA)
└── ProbeTransport            ← "send one probe, return latency or raise"
    ├── SubprocessPingTransport  ← system ping(8), one echo request
    └── TcpConnectTransport      ← TCP handshake latency to a fixed port

Transports signal failures with the probe exceptions from
exceptions.monitoring; the executor maps each to the classification string
stored in ProbeOutcome.error ("timeout", "unreachable", "resolution
failed", "transport error"). A failed probe is data, not a fault.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import re
import socket
import sys
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

from config.constants import Defaults, PING_OUTPUT_MARKERS, ProbeErrorKind
from exceptions.monitoring import (
    DNSResolutionError,
    HostUnreachableError,
    ProbeException,
    ProbeTimeoutError,
    ProbeTransportError,
)
from monitoring.models import PingTarget, ProbeOutcome
from utils.helpers import TimeHelper
from utils.logger import get_logger
from utils.validators import AddressValidator


logger = get_logger("ProbeExecutor")


# ============================================================================
# TRANSPORT INTERFACE
# ============================================================================

class ProbeTransport(ABC):
    """
    Abstract "send one probe" capability.

    ``measure`` returns the round-trip latency in milliseconds or raises
    a ProbeException subclass describing why no reply was measured.
    """

    name: str = "abstract"

    @abstractmethod
    async def measure(self, address: str, timeout: float) -> float:
        """Probe *address* once, waiting at most *timeout* seconds."""


# ============================================================================
# SYSTEM PING TRANSPORT
# ============================================================================

class SubprocessPingTransport(ProbeTransport):
    """
    Shells out to the platform ``ping`` command for one echo request.

    Works without raw-socket privileges. The child process is killed if
    the probe is cancelled or times out.
    """

    name = "icmp"

    # "time=12.3 ms", "time=15ms", "time<1ms", "time 8.9 ms"
    LATENCY_PATTERN = re.compile(r"time[=<\s]\s*(\d+(?:\.\d+)?)", re.IGNORECASE)

    def __init__(self, executable: str = "ping", platform: Optional[str] = None):
        self.executable = executable
        self.platform = platform or sys.platform

    def build_command(self, address: str, timeout: float) -> List[str]:
        """Platform-specific arguments for a single echo request."""
        timeout_ms = max(int(timeout * 1000), 1)
        timeout_secs = max(int(-(-timeout_ms // 1000)), 1)

        if self.platform.startswith("win"):
            return [self.executable, "-n", "1", "-w", str(timeout_ms), address]
        if self.platform == "darwin":
            return [self.executable, "-c", "1", "-t", str(timeout_secs), address]
        if self.platform.startswith("linux"):
            return [self.executable, "-c", "1", "-W", str(timeout_secs), address]
        return [self.executable, "-c", "1", address]

    @classmethod
    def parse_latency(cls, output: str) -> Optional[float]:
        """Extract the round-trip time in ms from ping output, if present."""
        match = cls.LATENCY_PATTERN.search(output)
        if match is None:
            return None
        return float(match.group(1))

    @staticmethod
    def classify_output(output: str) -> ProbeErrorKind:
        """Map failed ping output to a failure classification."""
        lowered = output.lower()
        for marker, kind in PING_OUTPUT_MARKERS:
            if marker in lowered:
                return kind
        return ProbeErrorKind.TIMEOUT

    async def measure(self, address: str, timeout: float) -> float:
        command = self.build_command(address, timeout)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeTransportError(
                f"Failed to execute {self.executable}: {e}", address=address, cause=e
            ) from e

        try:
            stdout, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                # Cancelled by the executor's timeout
                process.kill()
                await process.wait()

        output = stdout.decode(errors="replace") + "\n" + stderr.decode(errors="replace")

        if process.returncode == 0:
            # Windows reports unreachable replies with exit code 0 and no time=
            if "unreachable" in output.lower():
                raise HostUnreachableError(address=address)
            latency = self.parse_latency(output)
            if latency is None:
                raise ProbeTransportError(
                    "Could not parse latency from ping output", address=address
                )
            return latency

        kind = self.classify_output(output)
        detail = output.strip().splitlines()[-1] if output.strip() else f"exit code {process.returncode}"
        if kind is ProbeErrorKind.RESOLUTION_FAILED:
            raise DNSResolutionError(detail, address=address)
        if kind is ProbeErrorKind.UNREACHABLE:
            raise HostUnreachableError(detail, address=address)
        if kind is ProbeErrorKind.TIMEOUT:
            raise ProbeTimeoutError(detail, timeout=timeout, address=address)
        raise ProbeTransportError(detail, address=address)


# ============================================================================
# TCP CONNECT TRANSPORT
# ============================================================================

class TcpConnectTransport(ProbeTransport):
    """
    Measures TCP handshake latency to ``port``.

    A refused connection still proves the host answered, so it counts as a
    reply; only timeouts and network errors are failures.
    """

    name = "tcp"

    def __init__(self, port: int = Defaults.TCP_PORT):
        self.port = port

    async def measure(self, address: str, timeout: float) -> float:
        start_time = time.perf_counter()
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(address, self.port),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProbeTimeoutError(timeout=timeout, address=address) from e
        except ConnectionRefusedError:
            return (time.perf_counter() - start_time) * 1000.0
        except socket.gaierror as e:
            raise DNSResolutionError(str(e), address=address, cause=e) from e
        except OSError as e:
            if isinstance(e, TimeoutError):
                raise ProbeTimeoutError(timeout=timeout, address=address) from e
            raise HostUnreachableError(str(e), address=address, cause=e) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000.0

        # Handshake done, close right away
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return elapsed_ms


# ============================================================================
# HOSTNAME RESOLVER
# ============================================================================

class HostnameResolver:
    """
    Resolves hostnames with dnspython so resolution failures are reported
    as such instead of surfacing as a generic transport error.
    """

    def __init__(self, resolver: Optional[dns.asyncresolver.Resolver] = None):
        self._resolver = resolver

    def _get_resolver(self) -> dns.asyncresolver.Resolver:
        if self._resolver is None:
            try:
                self._resolver = dns.asyncresolver.Resolver()
            except dns.resolver.NoResolverConfiguration as e:
                raise DNSResolutionError("No DNS resolver configured", cause=e) from e
        return self._resolver

    async def resolve(self, hostname: str, timeout: float) -> str:
        """Return the first A (then AAAA) address for *hostname*."""
        resolver = self._get_resolver()
        last_error: Optional[Exception] = None

        for record_type in ("A", "AAAA"):
            try:
                answer = await resolver.resolve(hostname, record_type, lifetime=timeout)
            except (dns.resolver.NXDOMAIN, dns.resolver.NoNameservers) as e:
                raise DNSResolutionError(str(e), address=hostname, cause=e) from e
            except dns.resolver.NoAnswer as e:
                last_error = e
                continue
            except dns.exception.Timeout as e:
                raise DNSResolutionError(
                    f"DNS lookup timed out after {timeout:.2f}s", address=hostname, cause=e
                ) from e
            except dns.exception.DNSException as e:
                raise DNSResolutionError(str(e), address=hostname, cause=e) from e

            for rdata in answer:
                return rdata.to_text()

        raise DNSResolutionError(
            f"No address records for {hostname}", address=hostname, cause=last_error
        )


# ============================================================================
# PROBE EXECUTOR
# ============================================================================

class ProbeExecutor:
    """
    Runs one probe through the transport and always returns an outcome.

    Parameters
    ----------
    transport : ProbeTransport
        The round-trip capability.
    resolver : HostnameResolver | None
        When given, hostnames are resolved first and the resolution time is
        deducted from the probe timeout.
    """

    def __init__(self, transport: ProbeTransport, resolver: Optional[HostnameResolver] = None):
        self.transport = transport
        self.resolver = resolver

    async def probe(self, target: PingTarget, timeout: float) -> ProbeOutcome:
        """
        Probe *target* once, waiting at most *timeout* seconds.

        Never raises except for cancellation of the calling task.
        """
        timestamp = TimeHelper.get_utc_now()
        start_time = time.perf_counter()

        try:
            latency_ms = await asyncio.wait_for(
                self._measure(target.address, timeout, start_time),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return self._failure(target, ProbeErrorKind.TIMEOUT, timestamp, "no reply within timeout")
        except ProbeException as e:
            return self._failure(target, e.kind, timestamp, e.message)
        except Exception as e:
            logger.error(f"[Probe] {target.address} unexpected transport failure: {e!r}")
            return self._failure(target, ProbeErrorKind.TRANSPORT_ERROR, timestamp, str(e))

        logger.debug(f"[Probe] {target.address} → {latency_ms:.2f} ms")
        return ProbeOutcome.succeeded(target, latency_ms, timestamp=timestamp)

    async def _measure(self, address: str, timeout: float, start_time: float) -> float:
        if self.resolver is not None and not AddressValidator.is_valid_ip(address):
            address = await self.resolver.resolve(address, timeout)
            remaining = timeout - (time.perf_counter() - start_time)
            if remaining <= 0:
                raise ProbeTimeoutError(timeout=timeout, address=address)
            timeout = remaining
        return await self.transport.measure(address, timeout)

    @staticmethod
    def _failure(target: PingTarget, kind: ProbeErrorKind, timestamp, detail: str) -> ProbeOutcome:
        logger.debug(f"[Probe] {target.address} failed ({kind.value}): {detail}")
        return ProbeOutcome.failed(target, kind.value, timestamp=timestamp)
