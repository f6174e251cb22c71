"""Tests for the command-line interface.

Taichi is already initialized by the session fixture, so the tests replace
init_taichi() with a no-op instead of re-initializing the runtime.
"""

import json

import pytest
from PIL import Image as PILImage


@pytest.fixture
def no_taichi_init(monkeypatch):
    import wavetrace.cli

    monkeypatch.setattr(wavetrace.cli, "init_taichi", lambda arch="auto": None)


class TestParser:
    """Tests for argument parsing and configuration overrides."""

    def test_overrides(self):
        """Test that flags override configuration values."""
        from wavetrace.cli import build_parser, resolve_config

        args = build_parser().parse_args(
            ["--seed", "9", "--count", "12", "--speed", "2.0", "--no-light", "generate"]
        )
        config = resolve_config(args)
        assert config.seed == 9
        assert config.sphere_count == 12
        assert config.waving_speed == 2.0
        assert config.light is None

    def test_config_file_then_flags(self, tmp_path):
        """Test that flags win over the configuration file."""
        from wavetrace.cli import build_parser, resolve_config
        from wavetrace.config import RayTracingConfig, save_config

        path = tmp_path / "config.json"
        save_config(RayTracingConfig(sphere_count=40, placement_radius=60.0), path)
        args = build_parser().parse_args(["--config", str(path), "--count", "5", "generate"])
        config = resolve_config(args)
        assert config.sphere_count == 5
        assert config.placement_radius == 60.0

    def test_rejects_non_positive_size(self):
        """Test that image sizes must be positive."""
        from wavetrace.cli import build_parser

        with pytest.raises(SystemExit):
            build_parser().parse_args(["render", "--width", "0"])

    def test_frame_paths(self, tmp_path):
        """Test output naming for single frames and sequences."""
        from wavetrace.cli import frame_paths

        assert frame_paths(tmp_path / "a.png", 1) == [tmp_path / "a.png"]
        assert frame_paths(tmp_path / "a.png", 2) == [tmp_path / "a_0000.png", tmp_path / "a_0001.png"]


class TestCommands:
    """Tests for running commands through main()."""

    def test_generate_to_stdout(self, capsys):
        """Test that generate prints the scene as JSON."""
        from wavetrace.cli import main

        assert main(["--log-level", "WARNING", "--seed", "4", "--count", "15", "generate"]) == 0
        document = json.loads(capsys.readouterr().out)
        assert document["config"]["seed"] == 4
        assert 1 <= len(document["spheres"]) <= 15
        assert set(document["spheres"][0]) == {"position", "radius", "albedo", "specular"}

    def test_generate_stdout_stays_json_with_debug_logging(self, capsys):
        """Test that log records go to stderr, not into the JSON on stdout."""
        from wavetrace.cli import main

        assert main(["--log-level", "DEBUG", "--seed", "4", "--count", "5", "generate"]) == 0
        captured = capsys.readouterr()
        assert json.loads(captured.out)["config"]["sphere_count"] == 5
        assert "Logging initialized" in captured.err

    def test_generate_to_file_is_reproducible(self, tmp_path):
        """Test that the same seed writes the same scene."""
        from wavetrace.cli import main

        a, b = tmp_path / "a.json", tmp_path / "b.json"
        assert main(["--log-level", "WARNING", "--seed", "4", "generate", "--output", str(a)]) == 0
        assert main(["--log-level", "WARNING", "--seed", "4", "generate", "--output", str(b)]) == 0
        assert a.read_text() == b.read_text()

    def test_render_single_frame(self, tmp_path, no_taichi_init):
        """Test rendering one PNG."""
        from wavetrace.cli import main

        output = tmp_path / "frame.png"
        status = main(
            ["--log-level", "WARNING", "--seed", "1", "--count", "5",
             "render", "--width", "16", "--height", "8", "--output", str(output)]
        )
        assert status == 0
        with PILImage.open(output) as image:
            assert image.size == (16, 8)

    def test_render_sequence(self, tmp_path, no_taichi_init):
        """Test rendering a numbered frame sequence."""
        from wavetrace.cli import main

        output = tmp_path / "seq.png"
        status = main(
            ["--log-level", "WARNING", "--seed", "1", "--count", "5", "render",
             "--width", "8", "--height", "8", "--frames", "3", "--output", str(output)]
        )
        assert status == 0
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "seq_0000.png",
            "seq_0001.png",
            "seq_0002.png",
        ]

    def test_invalid_config_returns_error(self, tmp_path):
        """Test that configuration errors exit with status 1."""
        from wavetrace.cli import main

        assert main(["--log-level", "ERROR", "--config", str(tmp_path / "missing.json"), "generate"]) == 1
        assert main(["--log-level", "ERROR", "--count", "-3", "generate"]) == 1

    def test_malformed_config_value_returns_error(self, tmp_path):
        """Test that a wrongly typed value in the config file exits with status 1."""
        from wavetrace.cli import main

        path = tmp_path / "config.json"
        path.write_text(json.dumps({"sphere_count": "a hundred"}), encoding="utf-8")
        assert main(["--log-level", "ERROR", "--config", str(path), "generate"]) == 1

    def test_missing_sky_returns_error(self, tmp_path, no_taichi_init):
        """Test that an unreadable sky image exits with status 1."""
        from wavetrace.cli import main

        status = main(
            ["--log-level", "ERROR", "render", "--width", "8", "--height", "8",
             "--sky", str(tmp_path / "missing.png"), "--output", str(tmp_path / "x.png")]
        )
        assert status == 1
