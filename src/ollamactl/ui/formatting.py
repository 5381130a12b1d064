"""
Report formatting for ollamactl

Renders model descriptions and model listings as aligned plain text. The
layout is byte-for-byte stable: section titles are indented by two spaces,
rows by four, and padded cells keep their trailing spaces.
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TextIO, Tuple

import structlog

from ..core.models import ListedModel, MetadataValue, ModelDescription, NumberValue, StringValue
from ..utils.helpers import format_decimal, human_bytes, human_number, human_time
from .tables import align_rows, align_table

logger = structlog.get_logger(__name__)

Row = Tuple[str, ...]

SYSTEM_PREVIEW_LINES = 2
ELLIPSIS = "..."


class RenderError(Exception):
    """Writing the rendered report to its destination failed"""
    pass


def _write(sink: TextIO, text: str):
    try:
        sink.write(text)
    except (OSError, ValueError) as e:
        raise RenderError(f"failed to write report: {e}") from e


def write_section(sink: TextIO, title: str, rows: Sequence[Sequence[str]]):
    """Write one titled table followed by a blank line

    Rows get an empty leading column so every line is indented by the gap.
    """
    lines = align_rows([("",) + tuple(row) for row in rows])
    _write(sink, f"  {title}\n" + "".join(line + "\n" for line in lines) + "\n")


def _text(info: Dict[str, MetadataValue], key: str) -> Optional[str]:
    value = info.get(key)
    if isinstance(value, StringValue):
        return value.value
    return None


def _number(info: Dict[str, MetadataValue], key: str) -> Optional[float]:
    value = info.get(key)
    if isinstance(value, NumberValue):
        return value.value
    return None


def _find_number(info: Dict[str, MetadataValue], preferred: str, fragment: str) -> Optional[float]:
    """Value of `preferred`, else of the first key (sorted) containing `fragment`"""
    number = _number(info, preferred)
    if number is not None:
        return number
    for key in sorted(info):
        if fragment in key:
            number = _number(info, key)
            if number is not None:
                return number
    return None


def clean_lines(text: str, limit: int = -1) -> List[Row]:
    """Stripped non-empty lines; with a limit, extra lines collapse into '...'"""
    rows: List[Row] = []
    count = 0
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        count += 1
        if limit < 0 or count <= limit:
            rows.append((line,))

    if 0 <= limit < count:
        rows.append((ELLIPSIS,))
    return rows


def parse_parameters(text: str) -> List[Row]:
    """Split each non-empty line into its key and the rest of the line"""
    rows: List[Row] = []
    for line in text.split("\n"):
        parts = line.split(None, 1)
        if not parts:
            continue
        rows.append((parts[0], parts[1].strip() if len(parts) > 1 else ""))
    return rows


class ReportRenderer:
    """
    Renders a ModelDescription section by section.

    Sections appear in a fixed order; optional ones are skipped when their
    source data is missing or empty.
    """

    def __init__(self, description: ModelDescription, verbose: bool = False):
        self.description = description
        self.verbose = verbose

    def sections(self) -> List[Tuple[str, List[Row]]]:
        builders: List[Tuple[str, Callable[[], List[Row]]]] = [
            ("Model", self.model_rows),
            ("Parameters", self.parameter_rows),
        ]
        if self.verbose:
            builders.append(("Metadata", self.metadata_rows))
            builders.append(("Tensors", self.tensor_rows))
        builders.extend([
            ("Projector", self.projector_rows),
            ("System", self.system_rows),
            ("License", self.license_rows),
            ("Capabilities", self.capability_rows),
        ])

        sections = []
        for title, build in builders:
            rows = build()
            # Model is always shown, even with nothing to say
            if rows or title == "Model":
                sections.append((title, rows))
        return sections

    def render(self, sink: TextIO):
        for title, rows in self.sections():
            write_section(sink, title, rows)

    def model_rows(self) -> List[Row]:
        info = self.description.model_info
        details = self.description.details

        arch = _text(info, "general.architecture")
        if arch is None:
            arch = details.family
        rows: List[Row] = [("architecture", arch)]

        parameters = details.parameter_size
        count = _number(info, "general.parameter_count")
        if not parameters and count is not None:
            parameters = human_number(count)
        rows.append(("parameters", parameters))

        context = _find_number(info, f"{arch}.context_length", "context_length")
        if context is not None:
            rows.append(("context length", format_decimal(context)))
        embedding = _find_number(info, f"{arch}.embedding_length", "embedding_length")
        if embedding is not None:
            rows.append(("embedding length", format_decimal(embedding)))

        rows.append(("quantization", details.quantization_level))
        return rows

    def projector_rows(self) -> List[Row]:
        info = self.description.projector_info
        if not info:
            return []

        arch = _text(info, "general.architecture") or ""
        rows: List[Row] = [("architecture", arch)]

        count = _number(info, "general.parameter_count")
        if count is not None:
            rows.append(("parameters", human_number(count)))

        embedding = _find_number(info, f"{arch}.vision.embedding_length", "embedding_length")
        if embedding is not None:
            rows.append(("embedding length", format_decimal(embedding)))
        dimensions = _find_number(info, f"{arch}.vision.projection_dim", "projection_dim")
        if dimensions is not None:
            rows.append(("dimensions", format_decimal(dimensions)))
        return rows

    def parameter_rows(self) -> List[Row]:
        return parse_parameters(self.description.parameters)

    def metadata_rows(self) -> List[Row]:
        info = self.description.model_info
        return [(key, info[key].format()) for key in sorted(info)]

    def tensor_rows(self) -> List[Row]:
        return [
            (tensor.name, tensor.type, "[" + " ".join(str(dim) for dim in tensor.shape) + "]")
            for tensor in self.description.tensors
        ]

    def system_rows(self) -> List[Row]:
        return clean_lines(self.description.system, SYSTEM_PREVIEW_LINES)

    def license_rows(self) -> List[Row]:
        return clean_lines(self.description.license)

    def capability_rows(self) -> List[Row]:
        return [(capability.lower(),) for capability in self.description.capabilities]


def render(description: ModelDescription, verbose: bool, sink: TextIO):
    """Write the full `show` report for a model to sink"""
    logger.debug("Rendering model report", verbose=verbose)
    ReportRenderer(description, verbose).render(sink)


LIST_HEADER = ("NAME", "ID", "SIZE", "MODIFIED")


def model_list_rows(models: Iterable[ListedModel], now: Optional[datetime] = None) -> List[Row]:
    return [
        (model.name, model.digest[:12], human_bytes(model.size), human_time(model.modified_at, now))
        for model in models
    ]


def render_model_list(models: Iterable[ListedModel], sink: TextIO, now: Optional[datetime] = None):
    """Write the NAME/ID/SIZE/MODIFIED listing"""
    lines = align_table(LIST_HEADER, model_list_rows(models, now))
    _write(sink, "".join(line + "\n" for line in lines))
