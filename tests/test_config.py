import pytest

from ledger.config import DEFAULT_ANALYSIS_MODEL, load_settings

ENV_NAMES = (
    "GEMINI_API_KEY",
    "ACM_ANALYSIS_MODEL",
    "ACM_AUDIT_MODEL",
    "ACM_SNIPPET_ROWS",
    "ACM_QUARTER_WIDTH",
    "ACM_TOP_PLANTS",
    "ACM_TOP_ISSUES",
)


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    # setenv first so monkeypatch also removes anything a .env load adds.
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults(clean_env):
    s = load_settings()
    assert s.gemini_api_key is None
    assert s.analysis_model == DEFAULT_ANALYSIS_MODEL
    assert s.snippet_rows == 20
    assert s.quarter_width == 160.0
    assert (s.top_plants, s.top_issues) == (10, 12)


def test_env_overrides(clean_env, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("ACM_AUDIT_MODEL", "gemini-test")
    monkeypatch.setenv("ACM_SNIPPET_ROWS", "50")
    monkeypatch.setenv("ACM_QUARTER_WIDTH", "200")
    monkeypatch.setenv("ACM_TOP_PLANTS", "5")
    monkeypatch.setenv("ACM_TOP_ISSUES", "8")
    s = load_settings()
    assert s.gemini_api_key == "abc"
    assert s.audit_model == "gemini-test"
    assert s.snippet_rows == 50
    assert s.quarter_width == 200.0
    assert (s.top_plants, s.top_issues) == (5, 8)


def test_bad_numbers_fall_back(clean_env, monkeypatch):
    monkeypatch.setenv("ACM_SNIPPET_ROWS", "many")
    monkeypatch.setenv("ACM_QUARTER_WIDTH", "-5")
    monkeypatch.setenv("ACM_TOP_ISSUES", "0")
    s = load_settings()
    assert s.snippet_rows == 20
    assert s.quarter_width == 160.0
    assert s.top_issues == 12


def test_dotenv_file_is_read(clean_env, monkeypatch):
    (clean_env / ".env").write_text("GEMINI_API_KEY=from-file\nACM_TOP_PLANTS=3\n", encoding="utf-8")
    monkeypatch.setenv("ACM_TOP_PLANTS", "7")
    s = load_settings()
    assert s.gemini_api_key == "from-file"
    assert s.top_plants == 7
