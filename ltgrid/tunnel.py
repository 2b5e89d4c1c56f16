"""LambdaTest tunnel process manager.

Runs the vendor ``LT`` tunnel binary as a child process, one per tunnel
index. Every tunnel shares the same name so the grid load-balances
sessions across them.
"""
from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass

import structlog

from ltgrid.config import Config
from ltgrid.errors import TunnelError

log = structlog.get_logger(__name__)

READY_MARKER = "You can start testing now"
STOP_GRACE = 10.0  # seconds between SIGTERM and SIGKILL


@dataclass
class _Tunnel:
    index: int
    process: asyncio.subprocess.Process
    drain_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self.process.returncode is None


class TunnelManager:
    """Start and stop LT tunnel processes by index."""

    def __init__(self, cfg: Config, ready_marker: str = READY_MARKER) -> None:
        self.cfg = cfg
        self.ready_marker = ready_marker
        self.name = cfg.tunnel_name or f"ltgrid-{secrets.token_hex(4)}"
        self._tunnels: dict[int, _Tunnel] = {}

    @property
    def enabled(self) -> bool:
        return self.cfg.tunnel

    def is_running(self, index: int) -> bool:
        tunnel = self._tunnels.get(index)
        return tunnel is not None and tunnel.running

    def build_command(self, index: int) -> list[str]:
        cfg = self.cfg
        cmd = [
            cfg.tunnel_binary,
            "--user", cfg.username,
            "--key", cfg.access_key,
            "--tunnelName", self.name,
        ]
        if cfg.tunnel_logfile:
            logfile = cfg.tunnel_logfile
            if cfg.tunnel_number > 1:
                logfile = f"{logfile}.{index}"
            cmd += ["--logFile", logfile]
        if cfg.tunnel_verbose:
            cmd.append("--verbose")
        if cfg.proxy_host:
            cmd += ["--proxy-host", cfg.proxy_host]
            if cfg.proxy_port:
                cmd += ["--proxy-port", cfg.proxy_port]
            if cfg.proxy_user:
                cmd += ["--proxy-user", cfg.proxy_user]
            if cfg.proxy_pass:
                cmd += ["--proxy-pass", cfg.proxy_pass]
        return cmd

    async def connect(self, index: int) -> None:
        """Start tunnel ``index`` and wait until it reports ready.

        No-op when tunnelling is disabled or the tunnel is already up.
        """
        if not self.enabled:
            return
        if self.is_running(index):
            log.debug("tunnel already running", index=index, name=self.name)
            return

        log.debug("tunnel connecting", index=index, name=self.name)
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_command(index),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                stdin=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise TunnelError(
                f"Cannot start tunnel binary {self.cfg.tunnel_binary!r}: {exc}"
            ) from exc

        tunnel = _Tunnel(index=index, process=process)
        self._tunnels[index] = tunnel
        try:
            await asyncio.wait_for(
                self._wait_ready(tunnel), timeout=self.cfg.tunnel_ready_timeout
            )
        except asyncio.TimeoutError:
            await self._stop_process(tunnel)
            del self._tunnels[index]
            raise TunnelError(
                f"Tunnel {index} not ready after {self.cfg.tunnel_ready_timeout:g}s"
            ) from None
        except TunnelError:
            del self._tunnels[index]
            raise

        tunnel.drain_task = asyncio.get_running_loop().create_task(self._drain(tunnel))
        log.info("tunnel connected", index=index, name=self.name, pid=process.pid)

    async def destroy(self, index: int) -> None:
        """Stop tunnel ``index`` if it is running."""
        tunnel = self._tunnels.pop(index, None)
        if tunnel is None:
            log.debug("tunnel not running", index=index)
            return
        await self._stop_process(tunnel)
        log.info("tunnel destroyed", index=index, returncode=tunnel.process.returncode)

    async def destroy_all(self) -> None:
        for index in list(self._tunnels):
            await self.destroy(index)

    # -- Internals --

    async def _wait_ready(self, tunnel: _Tunnel) -> None:
        stdout = tunnel.process.stdout
        assert stdout is not None
        while True:
            raw = await stdout.readline()
            if not raw:
                code = await tunnel.process.wait()
                raise TunnelError(f"Tunnel {tunnel.index} exited with code {code} before ready")
            line = raw.decode(errors="replace").rstrip()
            log.debug("tunnel output", index=tunnel.index, line=line)
            if self.ready_marker in line:
                return

    async def _drain(self, tunnel: _Tunnel) -> None:
        # Keep reading so the child never blocks on a full pipe.
        stdout = tunnel.process.stdout
        assert stdout is not None
        while True:
            raw = await stdout.readline()
            if not raw:
                return
            line = raw.decode(errors="replace").rstrip()
            log.debug("tunnel output", index=tunnel.index, line=line)

    async def _stop_process(self, tunnel: _Tunnel) -> None:
        process = tunnel.process
        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(process.wait(), timeout=STOP_GRACE)
            except asyncio.TimeoutError:
                log.warning("tunnel ignored SIGTERM, killing", index=tunnel.index)
                process.kill()
                await process.wait()
        if tunnel.drain_task is not None:
            tunnel.drain_task.cancel()
            await asyncio.gather(tunnel.drain_task, return_exceptions=True)
            tunnel.drain_task = None
