import random
from collections import Counter

import pytest
from backend.reviewgen.models import WriterStyle
from backend.reviewgen.style import (
    DEFAULT_STYLE_WEIGHTS,
    STYLE_SAMPLER,
    DiscreteSampler,
    select_style,
)


@pytest.mark.parametrize(
    "draw, expected",
    [
        (0.0, WriterStyle.SHORT),
        (0.3999, WriterStyle.SHORT),
        (0.4, WriterStyle.CASUAL),
        (0.7999, WriterStyle.CASUAL),
        (0.8, WriterStyle.DETAILED),
        (0.9999, WriterStyle.DETAILED),
    ],
)
def test_style_bands(draw, expected):
    assert STYLE_SAMPLER.pick(draw) is expected


def test_draw_outside_unit_interval_rejected():
    with pytest.raises(ValueError):
        STYLE_SAMPLER.pick(1.0)
    with pytest.raises(ValueError):
        STYLE_SAMPLER.pick(-0.1)


def test_style_frequencies_converge():
    rng = random.Random(20240601)
    draws = 5000
    counts = Counter(select_style(rng) for _ in range(draws))
    for style, weight in DEFAULT_STYLE_WEIGHTS.items():
        assert abs(counts[style] / draws - weight) < 0.03


@pytest.mark.parametrize(
    "table",
    [
        {},
        {"a": 0.5, "b": 0.4},
        {"a": 1.2, "b": -0.2},
    ],
)
def test_invalid_tables_rejected(table):
    with pytest.raises(ValueError):
        DiscreteSampler(table)


def test_sampler_is_generic():
    sampler = DiscreteSampler({"heads": 0.5, "tails": 0.5})
    assert sampler.outcomes == ["heads", "tails"]
    assert sampler.pick(0.25) == "heads"
    assert sampler.pick(0.75) == "tails"
