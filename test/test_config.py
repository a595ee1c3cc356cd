from __future__ import annotations

from seo_parity.config import DEFAULT_CONFIG, load_config


def test_defaults_when_no_pyproject(tmp_path):
    config = load_config(tmp_path / "pyproject.toml")
    assert config == DEFAULT_CONFIG
    # a deep copy, not the shared defaults
    config["checks"]["title"] = False
    config["legacy_cdn_hosts"].append("x")
    assert DEFAULT_CONFIG["checks"]["title"] is True
    assert "x" not in DEFAULT_CONFIG["legacy_cdn_hosts"]


def test_tool_section_is_deep_merged(tmp_path):
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(
        """
[tool.seo_parity]
dev_url = "https://staging.example.com"
batch_size = 3
dev_path_rewrites = [["/rto-materials/", "/en/rto-materials/"]]

[tool.seo_parity.checks]
og_image = false

[tool.seo_parity.cache]
enabled = true
""",
        encoding="utf-8",
    )
    config = load_config(pyproject)
    assert config["dev_url"] == "https://staging.example.com"
    assert config["prod_url"] == DEFAULT_CONFIG["prod_url"]
    assert config["batch_size"] == 3
    assert config["checks"] == {"title": True, "description": True, "h1": True, "og_image": False}
    assert config["cache"]["enabled"] is True
    assert config["cache"]["directory"] == ".seo_parity_cache"
    assert config["dev_path_rewrites"] == [["/rto-materials/", "/en/rto-materials/"]]


def test_invalid_toml_falls_back_to_defaults(tmp_path):
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text("[tool.seo_parity\nbroken", encoding="utf-8")
    assert load_config(pyproject) == DEFAULT_CONFIG


def test_pyproject_without_section(tmp_path):
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text('[project]\nname = "x"\n', encoding="utf-8")
    assert load_config(pyproject) == DEFAULT_CONFIG


def test_sitemap_settings_can_be_overridden(tmp_path):
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(
        """
[tool.seo_parity]
sitemap_languages = ["en", "de"]
template_patterns = ["^/docs/[^/]+$"]
localization_example = ""
""",
        encoding="utf-8",
    )
    config = load_config(pyproject)
    assert config["sitemap_languages"] == ["en", "de"]
    assert config["template_patterns"] == ["^/docs/[^/]+$"]
    assert config["localization_example"] == ""
    assert config["locales"] == DEFAULT_CONFIG["locales"]
