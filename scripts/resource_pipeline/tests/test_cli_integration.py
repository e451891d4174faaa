"""
Integration tests for the CLI interface.
"""

import os
import shutil
import tempfile
from pathlib import Path

from PIL import Image
from typer.testing import CliRunner

from ..cli import app
from ..config import ENV_VARIABLES
from .helpers import write_grid_image


class TestCLIIntegration:
    """Run the commands against a throwaway project."""

    def setup_method(self):
        """Set up test environment."""
        self.runner = CliRunner()
        self.temp_dir = Path(tempfile.mkdtemp())

        self.sheets_dir = self.temp_dir / "spritesheets"
        write_grid_image(self.sheets_dir / "hero.png", 2, 2, 32, 32)

        self.animations_meta = self.temp_dir / "animations-meta.yml"
        self.animations_meta.write_text(
            "- {name: walk, tag: move, spritesheetID: hero, frames: [[0, 100], [1, 100], [3, 50]]}\n"
            "- {name: idle, spritesheetID: hero, frames: [[0, 500]]}\n"
        )
        self.spritesheets_meta = self.temp_dir / "spritesheets-meta.yml"
        self.spritesheets_meta.write_text("hero: {width: 32, height: 32}\n")

        self.output = self.temp_dir / "stage.res"

    def teardown_method(self):
        """Clean up test environment."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _build(self, *extra):
        return self.runner.invoke(app, [
            "build",
            "--spritesheets", str(self.sheets_dir),
            "--animations-meta", str(self.animations_meta),
            "--spritesheets-meta", str(self.spritesheets_meta),
            "--out", str(self.output),
            *extra,
        ])

    def test_help(self):
        result = self.runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "build" in result.stdout
        assert "inspect" in result.stdout

    def test_build(self):
        result = self._build("--no-summary")

        assert result.exit_code == 0
        assert "Build completed successfully" in result.stdout
        assert self.output.is_file()

    def test_build_with_summary(self):
        result = self._build()

        assert result.exit_code == 0
        assert "Build Summary" in result.stdout

    def test_build_failure_exits_nonzero(self):
        self.animations_meta.write_text("- {name: walk, spritesheetID: hero, frames: [[9, 100]]}\n")

        result = self._build("--no-summary")

        assert result.exit_code == 1

    def test_build_oversized_duration_reports_error(self):
        self.animations_meta.write_text(
            "- {name: walk, spritesheetID: hero, frames: [[0, 5000000000]]}\n"
        )

        result = self._build("--no-summary")

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "duration" in result.output

    def test_build_invalid_mode(self):
        result = self._build("--mode", "packed")
        assert result.exit_code == 1

    def test_build_missing_config_file(self):
        result = self._build("--config", str(self.temp_dir / "missing.toml"))
        assert result.exit_code == 1

    def test_build_from_config_file(self):
        config_file = self.temp_dir / "resource_pipeline.toml"
        config_file.write_text(
            "[paths]\n"
            f"spritesheets = {str(self.sheets_dir)!r}\n"
            f"animations_meta = {str(self.animations_meta)!r}\n"
            f"spritesheets_meta = {str(self.spritesheets_meta)!r}\n"
            f"output = {str(self.output)!r}\n"
        )

        result = self.runner.invoke(app, ["build", "--config", str(config_file), "--no-summary"])

        assert result.exit_code == 0
        assert self.output.is_file()

    def test_inspect_buckets(self):
        self._build("--no-summary")

        result = self.runner.invoke(app, ["inspect", str(self.output)])

        assert result.exit_code == 0
        assert "animations" in result.stdout
        assert "tags" in result.stdout

    def test_inspect_bucket_keys(self):
        self._build("--no-summary")

        result = self.runner.invoke(app, ["inspect", str(self.output), "--bucket", "animations"])

        assert result.exit_code == 0
        assert "walk" in result.stdout
        assert "idle" in result.stdout

    def test_inspect_record(self):
        self._build("--no-summary")

        result = self.runner.invoke(app, ["inspect", str(self.output), "-b", "tags", "-k", "move"])

        assert result.exit_code == 0
        assert "walk" in result.stdout

    def test_inspect_missing_key(self):
        self._build("--no-summary")

        result = self.runner.invoke(app, ["inspect", str(self.output), "-b", "animations", "-k", "run"])
        assert result.exit_code == 1

    def test_inspect_missing_bucket(self):
        self._build("--no-summary")

        result = self.runner.invoke(app, ["inspect", str(self.output), "-b", "pictures"])
        assert result.exit_code == 1

    def test_inspect_missing_file(self):
        result = self.runner.invoke(app, ["inspect", str(self.temp_dir / "nothing.res")])
        assert result.exit_code == 1

    def test_export_strip(self):
        self._build("--no-summary")
        strip_path = self.temp_dir / "walk.png"

        result = self.runner.invoke(app, [
            "export", "walk", "--store", str(self.output), "--output", str(strip_path),
            "--padding", "2",
        ])

        assert result.exit_code == 0
        with Image.open(strip_path) as strip:
            # Three 32px frames with two 2px gaps
            assert strip.size == (100, 32)

    def test_export_unknown_animation(self):
        self._build("--no-summary")

        result = self.runner.invoke(app, ["export", "run", "--store", str(self.output)])
        assert result.exit_code == 1

    def test_ingest_then_indexed_build(self):
        result = self.runner.invoke(app, [
            "ingest",
            "--spritesheets", str(self.sheets_dir),
            "--spritesheets-meta", str(self.spritesheets_meta),
            "--out", str(self.output),
        ])
        assert result.exit_code == 0

        result = self._build("--mode", "indexed", "--no-summary")
        assert result.exit_code == 0

        strip_path = self.temp_dir / "idle.png"
        result = self.runner.invoke(app, [
            "export", "idle", "--store", str(self.output), "--output", str(strip_path),
        ])
        assert result.exit_code == 0
        assert strip_path.is_file()

    def test_config_validate(self):
        result = self.runner.invoke(app, ["config", "--validate"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.stdout

    def test_config_validate_reports_errors(self):
        config_file = self.temp_dir / "bad.json"
        config_file.write_text('{"build": {"mode": "packed"}}')

        result = self.runner.invoke(app, ["config", "--validate", "--config", str(config_file)])
        assert result.exit_code == 1

    def test_malformed_default_config(self, monkeypatch):
        """Test a broken resource_pipeline.toml in the working directory is reported."""
        monkeypatch.chdir(self.temp_dir)
        (self.temp_dir / "resource_pipeline.toml").write_text("paths = [\n")

        result = self.runner.invoke(app, ["config", "--validate"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_config_env_vars(self):
        result = self.runner.invoke(app, ["config", "--env-vars"])

        assert result.exit_code == 0
        assert ENV_VARIABLES['mode'] in result.stdout

    def test_version(self):
        result = self.runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.stdout
