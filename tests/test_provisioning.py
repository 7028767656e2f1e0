"""
Unit tests for dependency provisioning and download transports.
"""

import pytest
from aiohttp import web

from featurerun.core.exceptions import DependencyError, ExecutionError
from featurerun.core.paths import file_size, first_match, is_valid_file
from featurerun.execution.notifier import RecordingStatusNotifier
from featurerun.execution.process import ProcessResult
from featurerun.provisioning.models import (
    COVERAGE_AGENT,
    KARATE_RUNNER,
    coverage_agent_spec,
    coverage_cli_spec,
    karate_runner_spec,
)
from featurerun.provisioning.provisioner import DependencyProvisioner
from featurerun.provisioning.transports import CurlTransport, HttpTransport

from conftest import FakeRunner, FakeTransport, make_config, write_sized_file


class TestPathHelpers:
    """Test cases for path probing helpers."""

    def test_first_match_returns_first_hit_in_order(self):
        assert first_match([1, 2, 3, 4], lambda n: n % 2 == 0) == 2
        assert first_match([], bool) is None

    def test_file_size_and_validity(self, tmp_path):
        path = write_sized_file(tmp_path / "a.jar", 10)

        assert file_size(path) == 10
        assert file_size(tmp_path / "missing") == -1
        assert is_valid_file(path, 10)
        assert not is_valid_file(path, 11)
        assert not is_valid_file(tmp_path, 0)


class TestDependencySpecs:
    """Test cases for the built-in dependency descriptions."""

    def test_specs(self, config):
        agent = coverage_agent_spec(config)
        runner = karate_runner_spec(config)
        cli = coverage_cli_spec(config)

        assert agent.install_path == config.jacoco_dir / "jacocoagent.jar"
        assert agent.min_valid_bytes == 1000
        assert agent.mirror_paths == (config.workspace_root / "jacoco" / "jacocoagent.jar",)
        assert runner.install_path == config.karate_dir / "karate.jar"
        assert runner.min_valid_bytes == 5_000_000
        assert runner.fallback_sources == (config.workspace_root / "karate.jar",)
        assert runner.download_url.endswith("karate-1.4.0.jar")
        assert cli.min_valid_bytes == 10_000

    def test_bundled_runner_fallback(self, tmp_path):
        config = make_config(tmp_path, bundled_resources_dir=tmp_path / "bundle")

        assert karate_runner_spec(config).fallback_sources[-1] == tmp_path / "bundle" / "karate.jar"

    def test_runner_settle_delay_is_extra(self, tmp_path):
        config = make_config(tmp_path, runner_settle_delay=8)

        assert karate_runner_spec(config).extra_settle_delay == 8
        assert coverage_agent_spec(config).extra_settle_delay == 0


class TestDependencyProvisioner:
    """Test cases for DependencyProvisioner."""

    @pytest.mark.asyncio
    async def test_existing_valid_file_skips_network(self, config, installed_jars, recording_sleep):
        transport = FakeTransport(size=10)
        provisioner = DependencyProvisioner(config, transports=[transport], sleep=recording_sleep)

        resolved = await provisioner.ensure_all()

        assert resolved == {
            COVERAGE_AGENT: installed_jars["agent"],
            KARATE_RUNNER: installed_jars["runner"],
        }
        assert transport.downloads == []
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_download_then_idempotent(self, config, recording_sleep):
        spec = coverage_agent_spec(config)
        transport = FakeTransport(size=2000)
        provisioner = DependencyProvisioner(config, transports=[transport], sleep=recording_sleep)

        first = await provisioner.ensure(spec)
        second = await provisioner.ensure(spec)

        assert first == second == spec.install_path
        assert len(transport.downloads) == 1
        assert transport.downloads[0] == (spec.download_url, spec.install_path)

    @pytest.mark.asyncio
    async def test_download_is_mirrored(self, config, recording_sleep):
        spec = coverage_agent_spec(config)
        provisioner = DependencyProvisioner(
            config, transports=[FakeTransport(size=2000)], sleep=recording_sleep
        )

        await provisioner.ensure(spec)

        assert file_size(spec.mirror_paths[0]) == 2000

    @pytest.mark.asyncio
    async def test_local_fallback_copy(self, config, recording_sleep):
        spec = karate_runner_spec(config)
        write_sized_file(config.workspace_root / "karate.jar", spec.min_valid_bytes)
        transport = FakeTransport(size=10)
        provisioner = DependencyProvisioner(config, transports=[transport], sleep=recording_sleep)

        path = await provisioner.ensure(spec)

        assert path == spec.install_path
        assert file_size(path) == spec.min_valid_bytes
        assert transport.downloads == []

    @pytest.mark.asyncio
    async def test_undersized_fallback_is_ignored(self, config, recording_sleep):
        spec = karate_runner_spec(config)
        write_sized_file(config.workspace_root / "karate.jar", 100)
        transport = FakeTransport(size=spec.min_valid_bytes)
        provisioner = DependencyProvisioner(config, transports=[transport], sleep=recording_sleep)

        await provisioner.ensure(spec)

        assert len(transport.downloads) == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_second_transport(self, config, recording_sleep):
        spec = coverage_agent_spec(config)
        failing = FakeTransport("curl", size=50, error=DependencyError("curl exited with 22"))
        working = FakeTransport("http", size=2000)
        notifier = RecordingStatusNotifier()
        provisioner = DependencyProvisioner(
            config, transports=[failing, working], notifier=notifier, sleep=recording_sleep
        )

        path = await provisioner.ensure(spec)

        assert file_size(path) == 2000
        assert len(failing.downloads) == 1
        assert len(working.downloads) == 1
        assert notifier.messages[-1] == ("success", f"{COVERAGE_AGENT} ready")

    @pytest.mark.asyncio
    async def test_undersized_download_tries_next_transport(self, config, recording_sleep):
        spec = coverage_agent_spec(config)
        truncated = FakeTransport("curl", size=10)
        working = FakeTransport("http", size=2000)
        provisioner = DependencyProvisioner(
            config, transports=[truncated, working], sleep=recording_sleep
        )

        await provisioner.ensure(spec)

        assert len(working.downloads) == 1
        # Verification retried before moving on
        assert recording_sleep.delays.count(config.provision_verify_delay) >= 1

    @pytest.mark.asyncio
    async def test_all_transports_fail(self, config, recording_sleep):
        spec = karate_runner_spec(config)
        provisioner = DependencyProvisioner(
            config,
            transports=[
                FakeTransport("curl", error=DependencyError("exit 6")),
                FakeTransport("http", size=100),
            ],
            sleep=recording_sleep,
        )

        with pytest.raises(DependencyError) as exc_info:
            await provisioner.ensure(spec)

        error = exc_info.value
        assert error.dependency == KARATE_RUNNER
        assert len(error.attempts) == 2
        assert error.attempts[0].startswith("curl:")
        assert not spec.install_path.exists()

    @pytest.mark.asyncio
    async def test_settle_delay_includes_spec_extra(self, tmp_path, recording_sleep):
        config = make_config(tmp_path, provision_settle_delay=3, runner_settle_delay=8)
        spec = karate_runner_spec(config)
        provisioner = DependencyProvisioner(
            config, transports=[FakeTransport(size=spec.min_valid_bytes)], sleep=recording_sleep
        )

        await provisioner.ensure(spec)

        assert recording_sleep.delays[0] == 11

    def test_default_transports(self, config):
        provisioner = DependencyProvisioner(config, runner=FakeRunner())

        assert [t.name for t in provisioner.transports] == ["curl", "http"]


class TestCurlTransport:
    """Test cases for CurlTransport."""

    @pytest.mark.asyncio
    async def test_builds_curl_command(self, tmp_path):
        runner = FakeRunner()
        dest = tmp_path / "jars" / "agent.jar"

        await CurlTransport(runner).download("https://example.com/agent.jar", dest)

        assert runner.calls[0][0] == ["curl", "-fsSL", "-o", str(dest), "https://example.com/agent.jar"]
        assert dest.parent.is_dir()

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, tmp_path):
        runner = FakeRunner(lambda args, name: ProcessResult(stdout="404", exit_code=22))

        with pytest.raises(DependencyError):
            await CurlTransport(runner).download("https://example.com/x", tmp_path / "x")

    @pytest.mark.asyncio
    async def test_launch_failure(self, tmp_path):
        def handler(args, name):
            raise ExecutionError("Failed to start", test_name=name)

        with pytest.raises(DependencyError):
            await CurlTransport(FakeRunner(handler)).download("https://example.com/x", tmp_path / "x")


@pytest.fixture
def payload():
    return b"jar-bytes" * 1000


async def _start_server(payload):
    async def jar(request):
        return web.Response(body=payload)

    async def moved(request):
        raise web.HTTPFound("/files/agent.jar")

    async def missing(request):
        return web.Response(status=404, text="not found")

    app = web.Application()
    app.router.add_get("/files/agent.jar", jar)
    app.router.add_get("/latest/agent.jar", moved)
    app.router.add_get("/missing.jar", missing)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    return runner, f"http://{host}:{port}"


class TestHttpTransport:
    """Test cases for HttpTransport against a local aiohttp server."""

    @pytest.mark.asyncio
    async def test_follows_redirects(self, tmp_path, payload):
        server, base_url = await _start_server(payload)
        try:
            dest = tmp_path / "agent.jar"
            await HttpTransport(timeout=10).download(f"{base_url}/latest/agent.jar", dest)
        finally:
            await server.cleanup()

        assert dest.read_bytes() == payload

    @pytest.mark.asyncio
    async def test_http_error_status(self, tmp_path, payload):
        server, base_url = await _start_server(payload)
        try:
            with pytest.raises(DependencyError) as exc_info:
                await HttpTransport(timeout=10).download(f"{base_url}/missing.jar", tmp_path / "x.jar")
        finally:
            await server.cleanup()

        assert "404" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_refused(self, tmp_path, payload):
        server, base_url = await _start_server(payload)
        await server.cleanup()

        with pytest.raises(DependencyError):
            await HttpTransport(timeout=5).download(f"{base_url}/files/agent.jar", tmp_path / "x.jar")
