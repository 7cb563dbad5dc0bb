"""
Tests for the imagebuild command line.
"""

import json
from unittest.mock import patch

import pytest

from imagebuild.cli import EXIT_FAILURE, EXIT_INVALID_SETTINGS, EXIT_OK, build_parser, main
from imagebuild.exceptions import RegistryLoginError
from imagebuild.runner import BuildResult

BACKEND_URL = "123456789012.dkr.ecr.us-east-1.amazonaws.com/fullstack-backend"
FRONTEND_URL = "123456789012.dkr.ecr.us-east-1.amazonaws.com/fullstack-frontend"


@pytest.fixture
def build_env(clean_build_env, tmp_path):
    """Environment of a CodeBuild run, without a .env file in the working directory."""
    clean_build_env.chdir(tmp_path)
    clean_build_env.setenv("AWS_REGION", "us-east-1")
    clean_build_env.setenv("CODEBUILD_RESOLVED_SOURCE_VERSION", "abcdef0123456789")
    clean_build_env.setenv("BACKEND_ECR_REPOSITORY_URL", BACKEND_URL)
    clean_build_env.setenv("FRONTEND_ECR_REPOSITORY_URL", FRONTEND_URL)
    clean_build_env.setenv("LOG_LEVEL", "ERROR")
    return clean_build_env


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_run_options(self):
        args = build_parser().parse_args(["--source-dir", "src", "run", "--skip-push", "--no-login"])

        assert args.command == "run"
        assert str(args.source_dir) == "src"
        assert args.skip_push is True
        assert args.no_login is True


class TestPlan:
    def test_plan_prints_json(self, build_env, source_tree, capsys):
        exit_code = main(["--source-dir", str(source_tree), "plan"])

        assert exit_code == EXIT_OK
        output = json.loads(capsys.readouterr().out)
        assert output["image_tag"] == "abcdef0"
        assert output["build"] == ["backend", "frontend"]
        assert output["skip"] == []
        assert output["image_definitions"] == {
            "ImageURI": {
                "backend": f"{BACKEND_URL}:abcdef0",
                "frontend": f"{FRONTEND_URL}:abcdef0",
            }
        }

    def test_missing_repository_url(self, build_env, capsys):
        build_env.delenv("FRONTEND_ECR_REPOSITORY_URL")

        exit_code = main(["plan"])

        assert exit_code == EXIT_INVALID_SETTINGS
        assert "FRONTEND_ECR_REPOSITORY_URL" in capsys.readouterr().err


class TestWriteArtifacts:
    def test_writes_both_files(self, build_env, source_tree, tmp_path):
        output_dir = tmp_path / "artifacts"

        exit_code = main(
            ["--source-dir", str(source_tree), "--output-dir", str(output_dir), "write-artifacts"]
        )

        assert exit_code == EXIT_OK
        document = json.loads((output_dir / "imageDefinitions.json").read_text())
        assert document["ImageURI"]["backend"] == f"{BACKEND_URL}:abcdef0"
        ecs_definitions = json.loads((output_dir / "ecs-imagedefinitions.json").read_text())
        assert [d["name"] for d in ecs_definitions] == ["backend", "frontend"]


class TestRun:
    def test_failure_exit_code(self, build_env, source_tree):
        with patch("imagebuild.cli.BuildRunner.run", side_effect=RegistryLoginError("denied")):
            exit_code = main(["--source-dir", str(source_tree), "run"])

        assert exit_code == EXIT_FAILURE

    def test_empty_checkout_fails(self, build_env, tmp_path):
        exit_code = main(["--source-dir", str(tmp_path / "empty"), "run", "--no-login"])

        assert exit_code == EXIT_FAILURE

    def test_success_summary(self, build_env, source_tree, capsys):
        result = BuildResult(
            image_tag="abcdef0",
            built=["backend"],
            skipped=["frontend"],
            pushed=[f"{BACKEND_URL}:abcdef0", f"{BACKEND_URL}:latest"],
        )
        with patch("imagebuild.cli.BuildRunner.run", return_value=result):
            exit_code = main(["--source-dir", str(source_tree), "run"])

        assert exit_code == EXIT_OK
        assert "Built 1 image(s) (backend) tagged abcdef0; pushed 2 reference(s)" in capsys.readouterr().out

    def test_flags_passed_to_runner(self, build_env, source_tree):
        with patch("imagebuild.cli.BuildRunner") as runner_cls:
            runner_cls.return_value.run.return_value = BuildResult(image_tag="abcdef0")

            main(["--source-dir", str(source_tree), "run", "--skip-push", "--no-login"])

        kwargs = runner_cls.call_args.kwargs
        assert kwargs["login"] is False
        assert kwargs["push"] is False
        assert kwargs["source_dir"] == source_tree
