import click
import json
import logging
from dataclasses import asdict
from pathlib import Path
from functools import wraps
from sqlscaffold.classify import classify
from sqlscaffold.generate import code_model, create_source, generate
from sqlscaffold.utils import load_config, LogFormatter, read_sql

log = logging.getLogger(__name__)


def setup_command(func):
    """Decorator to handle common CLI setup (logging, config loading, version)."""

    @wraps(func)
    def wrapper(config, debug, version=None, **kwargs):
        # Handle --version flag
        if version is not None and version:
            import tomllib

            with open("pyproject.toml", "rb") as f:
                data = tomllib.load(f)
            click.echo(data["project"]["version"])
            return

        # Setup logging
        log_handler = logging.StreamHandler()
        log_handler.setFormatter(LogFormatter())
        logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING, handlers=[log_handler])

        # Load config
        config_obj = load_config(config)
        if debug:
            log.debug(json.dumps(config_obj.model_dump(), indent=4))

        # Call actual command with config_obj
        return func(config_obj=config_obj, debug=debug, **kwargs)

    return wrapper


def _statement(config_obj, sql_file, name):
    """SQL text and business name, command line options override configuration."""
    sql_file = sql_file or config_obj.sql_file
    if sql_file is None:
        raise click.UsageError("SQL file is not configured, use --sql-file")
    business_name = name or config_obj.business_name
    if business_name is None:
        raise click.UsageError("Business name is not configured, use --name")
    return read_sql(sql_file), business_name


@click.group()
def cli():
    pass


@click.command()
@click.option("--config", default="config.yaml", help="Configuration file.")
@click.option("--debug", default=False, is_flag=True, help="Enable debug.")
@click.option("--version", is_flag=True, help="Show the application's version.")
@click.option("--sql-file", default=None, help="SQL statement file (overrides configuration).")
@click.option("--name", default=None, help="Business domain name (overrides configuration).")
@click.option("--output", default=None, help="Source root to write files to (default: stdout).")
@setup_command
def run(config_obj, debug, sql_file, name, output):
    """Generate Spring Boot sources for SQL statement."""
    sql, business_name = _statement(config_obj, sql_file, name)
    generated = generate(config_obj, sql, create_source(config_obj), business_name)
    if output is None:
        for item in generated:
            click.echo(f"// {item.artifact.path}")
            click.echo(item.source)
        return
    for item in generated:
        path = Path(output) / item.artifact.path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(item.source, encoding="UTF-8")
        log.info("Written %s", path)
    click.echo(f"Generated {len(generated)} files in {output}")


@click.command()
@click.option("--config", default="config.yaml", help="Configuration file.")
@click.option("--debug", default=False, is_flag=True, help="Enable debug.")
@click.option("--version", is_flag=True, help="Show the application's version.")
@click.option("--sql-file", default=None, help="SQL statement file (overrides configuration).")
@click.option("--name", default=None, help="Business domain name (overrides configuration).")
@setup_command
def model(config_obj, debug, sql_file, name):
    """Print code model of SQL statement as JSON."""
    sql, business_name = _statement(config_obj, sql_file, name)
    built = code_model(config_obj, sql, create_source(config_obj), business_name)
    click.echo(json.dumps(asdict(built), indent=4))


@click.command()
@click.option("--config", default="config.yaml", help="Configuration file.")
@click.option("--debug", default=False, is_flag=True, help="Enable debug.")
@click.option("--version", is_flag=True, help="Show the application's version.")
@click.option("--sql-file", default=None, help="SQL statement file (overrides configuration).")
@setup_command
def classify_command(config_obj, debug, sql_file):
    """Print kind of SQL statement."""
    sql_file = sql_file or config_obj.sql_file
    if sql_file is None:
        raise click.UsageError("SQL file is not configured, use --sql-file")
    click.echo(classify(read_sql(sql_file), config_obj.dialect).value)


cli.add_command(run)
cli.add_command(model)
cli.add_command(classify_command, name="classify")

if __name__ == "__main__":
    cli()
