import json
import yaml
import logging
from pydantic import ValidationError
from pathlib import Path
from sqlscaffold.config import Configuration, JSON
from sqlscaffold.errors import InvalidArgument


def load_config_file(path: str | Path) -> JSON:
    if isinstance(path, str):
        path = Path(path)
    with open(path, encoding="UTF-8") as file:
        if path.suffix in [".yaml", ".yml"]:
            loaded = yaml.safe_load(file)
        else:
            loaded = json.load(file)
    return loaded


def load_config(file_name: str | Path) -> Configuration:
    try:
        return Configuration().model_validate(load_config_file(file_name) or {})
    except ValidationError as error:
        raise ValueError("Error parsing configuration file") from error


def read_sql(path: str | Path) -> str:
    """Read SQL statement from file.

    Trailing semicolon is dropped, the statement is used as a single statement.

    :param path: file name
    :raises InvalidArgument: file has no SQL
    :return: SQL text
    """
    with open(path, encoding="UTF-8") as file:
        sql = file.read().strip()
    if sql.endswith(";"):
        sql = sql[:-1].rstrip()
    if not sql:
        raise InvalidArgument(f"SQL file {path} is empty")
    return sql


class LogFormatter(logging.Formatter):
    _grey = "\x1b[38;21m"
    _green = "\x1b[32m"
    _yellow = "\u001b[33m"
    _red = "\x1b[31;21m"
    _bold_red = "\x1b[31;1m"
    _blue = "\u001b[34m"
    _white = "\u001b[37m"
    _reset = "\x1b[0m"
    _bold = "\u001b[1m"
    _prefix = (
        _green
        + "%(asctime)s  "
        + _reset
        + _blue
        + "%(name)s "
        + _reset
        + _white
        + "%(funcName)s "
        + _reset
        + _bold
        + _grey
        + "%(levelname)s "
        + _reset
    )
    _message = "%(message)s"
    _formats = {
        logging.DEBUG: _prefix + _grey + _message + _reset,
        logging.INFO: _prefix + _white + _message + _reset,
        logging.WARNING: _prefix + _yellow + _message + _reset,
        logging.ERROR: _prefix + _red + _message + _reset,
        logging.CRITICAL: _prefix + _bold_red + _message + _reset,
    }

    def format(self, record):
        log_fmt = self._formats.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)
