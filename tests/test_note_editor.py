from vault_ocr.services import note_editor


def test_embed_pattern_matches_subpath_and_alias():
    pattern = note_editor.embed_pattern("img.png")
    assert pattern.search("![[img.png]]")
    assert pattern.search("see ![[_resources/deck/IMG.PNG|300]] here")
    assert not pattern.search("[[img.png]]")
    assert not pattern.search("![[other.png]]")


def test_embed_pattern_escapes_regex_characters():
    pattern = note_editor.embed_pattern("a+b (1).png")
    assert pattern.search("![[a+b (1).png]]")
    assert not pattern.search("![[aab (1).png]]")


def test_remove_legacy_links():
    content = "top [[_resources/deck/img.png|Open: img.png]] bottom [[img.png]]"
    assert note_editor.remove_legacy_links(content, "img.png") == "top  bottom [[img.png]]"


def test_split_lines_handles_crlf():
    assert note_editor.split_lines("a\r\nb\nc") == ["a", "b", "c"]


def test_insert_after_single_match():
    lines = ["para1", "![[img.png]]", "para2"]
    result, count = note_editor.insert_after_matches(
        lines, note_editor.embed_pattern("img.png"), "%%note%%"
    )
    assert count == 1
    assert result == ["para1", "![[img.png]]", "%%note%%", "para2"]


def test_insert_after_every_match_once():
    lines = ["![[img.png]]", "![[img.png]]", "end"]
    result, count = note_editor.insert_after_matches(
        lines, note_editor.embed_pattern("img.png"), "![[img.png]] echo"
    )
    # the inserted block itself matches the pattern but is stepped over
    assert count == 2
    assert result == [
        "![[img.png]]",
        "![[img.png]] echo",
        "![[img.png]]",
        "![[img.png]] echo",
        "end",
    ]


def test_insert_skips_embed_already_followed_by_block():
    block = "%%\n**Summary:** x\n%%"
    lines = ["![[img.png]]", "%%", "**Summary:** x", "%%", "tail"]
    result, count = note_editor.insert_after_matches(
        lines, note_editor.embed_pattern("img.png"), block
    )
    assert count == 0
    assert result == lines


def test_insert_skips_embed_followed_by_older_hidden_block():
    block = "%%\n**Registered:** 2026-01-02 00:00:00\n%%"
    lines = ["![[img.png]]", "%%", "**Registered:** 2025-12-31 10:00:00", "%%"]
    _, count = note_editor.insert_after_matches(
        lines, note_editor.embed_pattern("img.png"), block
    )
    assert count == 0


def test_no_match_leaves_lines_alone():
    lines = ["nothing", "here"]
    result, count = note_editor.insert_after_matches(
        lines, note_editor.embed_pattern("img.png"), "%%x%%"
    )
    assert count == 0
    assert result == lines


def test_replace_case_insensitive():
    content = "![[Shot_MD5.PNG]] and ![[shot_md5.png]]"
    assert (
        note_editor.replace_case_insensitive(content, "shot_MD5.png", "Agenda.png")
        == "![[Agenda.png]] and ![[Agenda.png]]"
    )


def test_replace_keeps_replacement_literal():
    assert note_editor.replace_case_insensitive("a.png", "a.png", r"b\1.png") == r"b\1.png"


def test_line_ending_detection():
    assert note_editor.line_ending("a\r\nb") == "\r\n"
    assert note_editor.line_ending("a\nb") == "\n"
    assert note_editor.line_ending("single line") == "\n"
