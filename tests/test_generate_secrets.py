"""
Tests for the signing key generator.
"""

from click.testing import CliRunner
from dotenv import dotenv_values

from generate_secrets import SECRET_KEYS, main


def _run(*args):
    return CliRunner().invoke(main, list(args))


class TestGenerateSecrets:
    def test_prints_env_lines(self):
        result = _run()

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert [line.split("=", 1)[0] for line in lines] == list(SECRET_KEYS)
        values = [line.split("=", 1)[1] for line in lines]
        assert len(set(values)) == 2
        assert all(len(value) >= 32 for value in values)

    def test_fills_placeholders_and_keeps_other_settings(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "FLASK_CONFIG=production\nSECRET_KEY=change-me\nCACHE_TYPE=SimpleCache\n"
        )

        result = _run("--env-file", str(env_file))

        assert result.exit_code == 0
        values = dotenv_values(env_file)
        assert values["FLASK_CONFIG"] == "production"
        assert values["CACHE_TYPE"] == "SimpleCache"
        assert values["SECRET_KEY"] != "change-me"
        assert values["WTF_CSRF_SECRET_KEY"]

    def test_creates_missing_file(self, tmp_path):
        env_file = tmp_path / ".env"

        result = _run("--env-file", str(env_file))

        assert result.exit_code == 0
        assert set(dotenv_values(env_file)) == set(SECRET_KEYS)

    def test_existing_keys_need_force(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SECRET_KEY=already-real\n")

        refused = _run("--env-file", str(env_file))

        assert refused.exit_code == 1
        assert "SECRET_KEY already set" in refused.output
        assert dotenv_values(env_file)["SECRET_KEY"] == "already-real"

        rotated = _run("--env-file", str(env_file), "--force")

        assert rotated.exit_code == 0
        assert dotenv_values(env_file)["SECRET_KEY"] != "already-real"
