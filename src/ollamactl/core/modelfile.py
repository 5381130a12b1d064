"""
Modelfile handling for `ollamactl create`
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog

from .models import CreateRequest, Message

logger = structlog.get_logger(__name__)

DEFAULT_MODELFILE = "Modelfile"

# parameters the server expects as lists
LIST_PARAMETERS = {"stop"}

_INSTRUCTION_RE = re.compile(r"^\s*([A-Za-z]+)\s+(.*)$", re.DOTALL)


class ModelfileError(Exception):
    """The Modelfile could not be parsed"""
    pass


def get_modelfile_name(filename: Optional[str] = None, cwd: Optional[Path] = None) -> Path:
    """Resolve the Modelfile to use

    Uses `filename` when given, otherwise `Modelfile` in the working
    directory. Raises FileNotFoundError when the file is missing.
    """
    base = cwd or Path.cwd()
    path = Path(filename) if filename else base / DEFAULT_MODELFILE
    if not path.is_absolute():
        path = base / path

    if not path.is_file():
        raise FileNotFoundError(f"no Modelfile found at {path}")
    return path.resolve()


def _coerce(value: str) -> Union[int, float, bool, str]:
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            continue
    return value


def _unquote(value: str) -> str:
    value = value.strip()
    if value.startswith('"""') and value.endswith('"""') and len(value) >= 6:
        return value[3:-3]
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _instructions(text: str) -> List[Tuple[str, str]]:
    """Split a Modelfile into (command, argument) pairs; \"\"\" spans lines"""
    instructions = []
    lines = text.split("\n")
    index = 0
    while index < len(lines):
        line = lines[index]
        index += 1
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        match = _INSTRUCTION_RE.match(stripped)
        if not match:
            raise ModelfileError(f"invalid Modelfile line: {stripped}")
        command, argument = match.group(1).upper(), match.group(2)

        # Multi-line argument: keep reading until the closing triple quote
        if argument.lstrip().startswith('"""') and argument.count('"""') == 1:
            parts = [argument]
            while index < len(lines):
                parts.append(lines[index])
                index += 1
                if '"""' in lines[index - 1]:
                    break
            else:
                raise ModelfileError(f"unterminated multiline string in {command}")
            argument = "\n".join(parts)

        instructions.append((command, argument))
    return instructions


def parse_modelfile(name: str, text: str) -> CreateRequest:
    """Turn Modelfile text into the create request for model `name`"""
    request = CreateRequest(model=name)
    parameters: Dict[str, Any] = {}

    for command, argument in _instructions(text):
        if command == "FROM":
            request.from_ = argument.strip()
        elif command == "SYSTEM":
            request.system = _unquote(argument)
        elif command == "TEMPLATE":
            request.template = _unquote(argument)
        elif command == "LICENSE":
            request.license.append(_unquote(argument))
        elif command == "PARAMETER":
            parts = argument.strip().split(None, 1)
            if len(parts) != 2:
                raise ModelfileError(f"PARAMETER needs a name and a value: {argument.strip()}")
            key, value = parts[0], _unquote(parts[1])
            if key in LIST_PARAMETERS:
                parameters.setdefault(key, []).append(value)
            else:
                parameters[key] = _coerce(value)
        elif command == "MESSAGE":
            parts = argument.strip().split(None, 1)
            if len(parts) != 2:
                raise ModelfileError(f"MESSAGE needs a role and content: {argument.strip()}")
            request.messages.append(Message(role=parts[0], content=_unquote(parts[1])))
        else:
            logger.warning("Ignoring unknown Modelfile instruction", command=command)

    if not request.from_:
        raise ModelfileError("no FROM line in Modelfile")

    request.parameters = parameters
    return request
