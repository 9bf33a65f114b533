"""Container build-and-deploy pipeline built on shipline.pipeline."""

from shipline.deploy.commands import (
    compose_down,
    compose_logs,
    compose_up,
    copy_files,
    docker_build,
    echo,
    git_clone,
    health_probe,
    remove_path,
)
from shipline.deploy.pipeline import (
    DEPLOY_STAGES,
    DeploySettings,
    build_deploy_pipeline,
    prepare_workspace,
)

__all__ = [
    "DEPLOY_STAGES",
    "DeploySettings",
    "build_deploy_pipeline",
    "compose_down",
    "compose_logs",
    "compose_up",
    "copy_files",
    "docker_build",
    "echo",
    "git_clone",
    "health_probe",
    "prepare_workspace",
    "remove_path",
]
