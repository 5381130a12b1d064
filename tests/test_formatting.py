"""Tests for the model report and list renderers."""

import io
from datetime import datetime, timedelta, timezone

import pytest

from ollamactl.core.models import ListedModel, ModelDescription, ModelDetails, Tensor, to_metadata
from ollamactl.ui.formatting import (
    RenderError,
    ReportRenderer,
    clean_lines,
    parse_parameters,
    render,
    render_model_list,
)
from ollamactl.ui.tables import align_table

DETAILS_7B = ModelDetails(family="test", parameter_size="7B", quantization_level="FP16")

MODEL_7B = (
    "  Model\n"
    "    architecture    test    \n"
    "    parameters      7B      \n"
    "    quantization    FP16    \n"
    "\n"
)


def rendered(description, verbose=False):
    out = io.StringIO()
    render(description, verbose, out)
    return out.getvalue()


def test_bare_details():
    assert rendered(ModelDescription(details=DETAILS_7B)) == MODEL_7B


def test_bare_model_info():
    description = ModelDescription(
        details=DETAILS_7B,
        model_info=to_metadata({
            "general.architecture": "test",
            "general.parameter_count": 7_000_000_000.0,
            "test.context_length": 0.0,
            "test.embedding_length": 0.0,
        }),
    )

    assert rendered(description) == (
        "  Model\n"
        "    architecture        test    \n"
        "    parameters          7B      \n"
        "    context length      0       \n"
        "    embedding length    0       \n"
        "    quantization        FP16    \n"
        "\n"
    )


def test_verbose_model():
    description = ModelDescription(
        details=ModelDetails(family="test", parameter_size="8B", quantization_level="FP16"),
        parameters="\n\t\t\tstop up",
        model_info=to_metadata({
            "general.architecture": "test",
            "general.parameter_count": 8_000_000_000.0,
            "some.true_bool": True,
            "some.false_bool": False,
            "test.context_length": 1000.0,
            "test.embedding_length": 11434.0,
        }),
        tensors=(
            Tensor(name="blk.0.attn_k.weight", type="BF16", shape=(42, 3117)),
            Tensor(name="blk.0.attn_q.weight", type="FP16", shape=(3117, 42)),
        ),
    )

    assert rendered(description, verbose=True) == (
        "  Model\n"
        "    architecture        test     \n"
        "    parameters          8B       \n"
        "    context length      1000     \n"
        "    embedding length    11434    \n"
        "    quantization        FP16     \n"
        "\n"
        "  Parameters\n"
        "    stop    up    \n"
        "\n"
        "  Metadata\n"
        "    general.architecture       test     \n"
        "    general.parameter_count    8e+09    \n"
        "    some.false_bool            false    \n"
        "    some.true_bool             true     \n"
        "    test.context_length        1000     \n"
        "    test.embedding_length      11434    \n"
        "\n"
        "  Tensors\n"
        "    blk.0.attn_k.weight    BF16    [42 3117]    \n"
        "    blk.0.attn_q.weight    FP16    [3117 42]    \n"
        "\n"
    )


def test_metadata_and_tensors_need_verbose():
    description = ModelDescription(
        details=DETAILS_7B,
        model_info=to_metadata({"some.flag": True}),
        tensors=(Tensor(name="t", type="F32", shape=(1,)),),
    )

    out = rendered(description)

    assert "Metadata" not in out
    assert "Tensors" not in out


def test_parameters_keep_duplicates_in_order():
    description = ModelDescription(
        details=DETAILS_7B,
        parameters="""
			stop never
			stop gonna
			stop give
			stop you
			stop up
			temperature 99""",
    )

    assert rendered(description) == MODEL_7B + (
        "  Parameters\n"
        "    stop           never    \n"
        "    stop           gonna    \n"
        "    stop           give     \n"
        "    stop           you      \n"
        "    stop           up       \n"
        "    temperature    99       \n"
        "\n"
    )


def test_parameter_value_keeps_inner_spaces():
    assert parse_parameters('stop "<|im start|>"\n\n  template   a  b  ') == [
        ("stop", '"<|im start|>"'),
        ("template", "a  b"),
    ]


def test_projector_info():
    description = ModelDescription(
        details=DETAILS_7B,
        projector_info=to_metadata({
            "general.architecture": "clip",
            "general.parameter_count": 133_700_000.0,
            "clip.vision.embedding_length": 0.0,
            "clip.vision.projection_dim": 0.0,
        }),
    )

    assert rendered(description) == MODEL_7B + (
        "  Projector\n"
        "    architecture        clip       \n"
        "    parameters          133.70M    \n"
        "    embedding length    0          \n"
        "    dimensions          0          \n"
        "\n"
    )


def test_projector_has_no_context_length_row():
    description = ModelDescription(
        details=DETAILS_7B,
        projector_info=to_metadata({
            "general.architecture": "clip",
            "clip.vision.context_length": 577.0,
            "clip.vision.embedding_length": 1024.0,
        }),
    )

    assert rendered(description) == MODEL_7B + (
        "  Projector\n"
        "    architecture        clip    \n"
        "    embedding length    1024    \n"
        "\n"
    )


def test_non_finite_parameter_count_does_not_fail():
    description = ModelDescription(
        details=ModelDetails(family="test"),
        model_info=to_metadata({"general.parameter_count": float("nan")}),
        projector_info=to_metadata({"general.architecture": "clip", "general.parameter_count": float("inf")}),
    )

    report = rendered(description)

    assert "    parameters      NaN     \n" in report
    assert "    parameters      +Inf    \n" in report


def test_system_is_truncated_after_two_lines():
    description = ModelDescription(
        details=DETAILS_7B,
        system="You are a pirate!\nAhoy, matey!\nWeigh anchor!\n\t\t\t",
    )

    assert rendered(description) == MODEL_7B + (
        "  System\n"
        "    You are a pirate!    \n"
        "    Ahoy, matey!         \n"
        "    ...                  \n"
        "\n"
    )


def test_short_system_has_no_ellipsis():
    description = ModelDescription(details=DETAILS_7B, system="You are a pirate!\n\nAhoy, matey!\n")

    assert rendered(description) == MODEL_7B + (
        "  System\n"
        "    You are a pirate!    \n"
        "    Ahoy, matey!         \n"
        "\n"
    )


def test_license():
    description = ModelDescription(details=DETAILS_7B, license="MIT License\nCopyright (c) Ollama\n")

    assert rendered(description) == MODEL_7B + (
        "  License\n"
        "    MIT License             \n"
        "    Copyright (c) Ollama    \n"
        "\n"
    )


def test_capabilities():
    description = ModelDescription(details=DETAILS_7B, capabilities=("vision", "tools"))

    assert rendered(description) == MODEL_7B + (
        "  Capabilities\n"
        "    vision    \n"
        "    tools     \n"
        "\n"
    )


def test_section_order():
    description = ModelDescription(
        details=DETAILS_7B,
        parameters="temperature 1",
        model_info=to_metadata({"general.architecture": "llama"}),
        tensors=(Tensor(name="t", type="F32", shape=(2, 2)),),
        projector_info=to_metadata({"general.architecture": "clip"}),
        system="hi",
        license="MIT",
        capabilities=("completion",),
    )

    titles = [title for title, _ in ReportRenderer(description, verbose=True).sections()]

    assert titles == [
        "Model", "Parameters", "Metadata", "Tensors", "Projector", "System", "License", "Capabilities",
    ]


def test_whitespace_only_sections_are_skipped():
    description = ModelDescription(details=DETAILS_7B, parameters="\n \n", system="  \n", license="\n")

    assert rendered(description) == MODEL_7B


def test_empty_description_still_has_model_section():
    assert rendered(ModelDescription()) == (
        "  Model\n"
        "    architecture        \n"
        "    parameters          \n"
        "    quantization        \n"
        "\n"
    )


def test_parameter_count_used_without_parameter_size():
    description = ModelDescription(
        details=ModelDetails(family="llama", quantization_level="Q4_0"),
        model_info=to_metadata({"general.architecture": "llama", "general.parameter_count": 8_030_261_248}),
    )

    rows = ReportRenderer(description).model_rows()

    assert ("parameters", "8.0B") in rows


def test_context_length_found_by_key_fragment():
    description = ModelDescription(
        details=DETAILS_7B,
        model_info=to_metadata({"general.architecture": "qwen2", "other.context_length": 32768}),
    )

    assert ("context length", "32768") in ReportRenderer(description).model_rows()


def test_clean_lines_limit():
    assert clean_lines("a\n\nb\nc\n", 2) == [("a",), ("b",), ("...",)]
    assert clean_lines("a\nb\n", 2) == [("a",), ("b",)]
    assert clean_lines("  a  \n", -1) == [("a",)]


def test_render_is_deterministic():
    description = ModelDescription(
        details=DETAILS_7B,
        model_info=to_metadata({"b.key": 1, "a.key": "x", "c.key": False}),
        parameters="stop a\nstop b",
    )

    assert rendered(description, verbose=True) == rendered(description, verbose=True)


class BrokenSink:
    def write(self, text):
        raise OSError("disk full")


def test_write_failure_raises_render_error():
    with pytest.raises(RenderError, match="disk full"):
        render(ModelDescription(details=DETAILS_7B), False, BrokenSink())


def test_render_model_list():
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    models = [
        ListedModel(name="model1", digest="sha256:abc123", size=1024, modified_at=now - timedelta(hours=24)),
        ListedModel(name="model2", digest="sha256:def456", size=2048, modified_at=now - timedelta(hours=48)),
    ]
    out = io.StringIO()

    render_model_list(models, out, now=now)

    assert out.getvalue() == (
        "NAME      ID              SIZE      MODIFIED     \n"
        "model1    sha256:abc12    1.0 KB    24 hours ago    \n"
        "model2    sha256:def45    2.0 KB    2 days ago      \n"
    )


def test_header_ends_with_single_space():
    lines = align_table(("NAME", "SIZE"), [("model1", "1.0 KB")])

    assert lines == [
        "NAME      SIZE   ",
        "model1    1.0 KB    ",
    ]
