from droppy.core.constants import FALLBACK_EDITORS
from droppy.core.editor import editor_candidates, open_in_editor, resolve_editor


def test_candidates_default_to_fallback_order():
    assert editor_candidates({}) == FALLBACK_EDITORS


def test_user_editor_is_prepended_by_basename():
    cands = editor_candidates({"EDITOR": "/opt/bin/micro"})
    assert cands[0] == "micro"
    assert cands[1:] == FALLBACK_EDITORS


def test_visual_wins_over_editor():
    assert editor_candidates({"VISUAL": "code", "EDITOR": "micro"})[0] == "code"


def test_user_editor_already_in_fallback_is_not_duplicated():
    cands = editor_candidates({"EDITOR": "/usr/bin/nano"})
    assert cands == FALLBACK_EDITORS
    assert cands.count("nano") == 1


def test_first_resolvable_candidate_wins():
    available = {"nano": "/usr/bin/nano", "emacs": "/usr/bin/emacs"}
    cands = editor_candidates({"EDITOR": "vim"})

    assert resolve_editor(cands, which=available.get) == "/usr/bin/nano"


def test_lookup_is_strictly_ordered_and_stops_at_first_hit():
    seen = []

    def which(name):
        seen.append(name)
        return "/bin/vi" if name == "vi" else None

    assert resolve_editor(("vim", "nano", "vi", "pico"), which=which) == "/bin/vi"
    assert seen == ["vim", "nano", "vi"]


def test_no_editor_found_returns_none():
    cands = editor_candidates({})
    assert resolve_editor(cands, which=lambda _name: None) is None
    assert cands == FALLBACK_EDITORS


def test_open_in_editor_passes_file_path():
    calls = []
    rc = open_in_editor("/usr/bin/nano", "/tmp/config.json", call=lambda cmd: calls.append(cmd) or 0)
    assert rc == 0
    assert calls == [["/usr/bin/nano", "/tmp/config.json"]]
