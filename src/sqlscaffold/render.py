from typing import List, Optional
import logging
from jinja2 import Environment, PackageLoader, select_autoescape
from sqlscaffold.config import Configuration
from sqlscaffold.emitters import JavaArtifact

log = logging.getLogger(__name__)


def create_env(config: Optional[Configuration] = None) -> Environment:
    """Create jinja2 environment.

    :param config: configuration, defaults to None
    :return: environment
    """
    env = Environment(
        loader=PackageLoader("sqlscaffold"),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    # Make config available as a global variable in all templates
    if config:
        env.globals["config"] = config
    return env


def render(config: Configuration, artifact: JavaArtifact, env: Optional[Environment] = None) -> str:
    env = env if env is not None else create_env(config)
    template = env.get_template(artifact.template)
    log.debug("Rendering %s with %s", artifact.qualified_name, artifact.template)
    return template.render(artifact=artifact, **artifact.context)


def render_all(config: Configuration, artifacts: List[JavaArtifact]) -> List[str]:
    env = create_env(config)
    return [render(config, artifact, env) for artifact in artifacts]
