"""Every vignette builds end to end."""

from __future__ import annotations

import pytest

from marginflow.backends import available_engines
from marginflow.config import RenderConfig
from marginflow.vignettes import VIGNETTES, build_all, build_vignette, list_vignettes


def test_list_vignettes():
    names = [v["name"] for v in list_vignettes()]
    assert names == [
        "introduction_comparisons",
        "difference_in_differences",
        "switching_engines",
        "link_and_response_scale",
    ]


@pytest.mark.parametrize("name", list(VIGNETTES))
def test_build_vignette(tmp_path, name):
    render = RenderConfig(fig_dpi=40, fig_width=4, fig_height=3)
    path = build_vignette(name, tmp_path, render=render)

    assert path == tmp_path / f"{name}.md"
    text = path.read_text(encoding="utf-8")
    assert text.startswith("---")
    assert "```python" in text
    for line in text.splitlines():
        if line.startswith("![]("):
            assert (tmp_path / line[4:-1]).exists()


def test_scale_vignette_shows_refused_exp_scale(tmp_path):
    text = build_vignette("link_and_response_scale", tmp_path, RenderConfig(fig_dpi=40)).read_text()
    assert "ValueError: scale='exp' is not available for slopes" in text
    assert "# Pairwise comparisons" in text


def test_did_vignette_reports_interaction(tmp_path):
    text = build_vignette("difference_in_differences", tmp_path, RenderConfig(fig_dpi=40)).read_text()
    assert "# Interaction contrasts (difference-in-differences)" in text


def test_engines_vignette_without_marginaleffects(tmp_path):
    text = build_vignette("switching_engines", tmp_path, RenderConfig(fig_dpi=40)).read_text()
    if not available_engines()["marginaleffects"]:
        assert "is not installed" in text
    assert "engines:" in text


def test_unknown_vignette(tmp_path):
    with pytest.raises(ValueError, match="Unknown vignette"):
        build_vignette("nope", tmp_path)


def test_build_all_writes_index(tmp_path):
    paths = build_all(tmp_path, RenderConfig(fig_dpi=40, fig_format="png"))
    assert set(paths) == set(VIGNETTES)
    index = (tmp_path / "index.md").read_text()
    for path in paths.values():
        assert path.name in index


def test_build_vignette_selects_agg_backend(tmp_path, monkeypatch):
    import matplotlib

    calls = []
    monkeypatch.setattr(matplotlib, "use", lambda backend, *args, **kwargs: calls.append(backend))
    build_vignette("difference_in_differences", tmp_path, RenderConfig(fig_dpi=40))
    assert calls == ["Agg"]


def test_engines_vignette_explains_margin_dependence(tmp_path):
    text = build_vignette("switching_engines", tmp_path, RenderConfig(fig_dpi=40)).read_text()
    assert "`grp` interacts with `episode`" in text
    assert 'additive = fit_model("outcome ~ grp + episode + sex + age"' in text
