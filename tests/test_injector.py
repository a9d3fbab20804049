from datetime import datetime

from injector import (
    ContentPath,
    find_region,
    format_timestamp,
    inject,
    inject_content,
)

NOW = datetime(2026, 10, 5, 9, 5, 3)
LATER = datetime(2026, 10, 6, 21, 30, 0)

PAGE = """<!doctype html>
<html>
<body>
    <main>
        <h1>Daily Space Fact</h1>
        <div id="content" class="text-lg text-gray-700">
            <p>Old fact.</p>
        </div>
        <p>Last updated: <span id="last-updated">never</span></p>
    </main>
</body>
</html>
"""


def test_end_to_end_scenario():
    doc = ('<html><body><h1>Hi</h1><div id="content" class="x">old</div>'
           '<p>keep me</p><span id="last-updated">stale</span></body></html>')
    result = inject(doc, "Mars has two moons.", NOW)

    expected = ('<html><body><h1>Hi</h1><div id="content" class="x">\n    <p>Mars has two moons.</p>\n</div>'
                '<p>keep me</p><span id="last-updated">' + format_timestamp(NOW) + '</span></body></html>')
    assert result.html == expected
    assert result.content_path is ContentPath.REPLACED
    assert result.timestamp_updated
    assert not result.used_fallback


def test_bytes_outside_content_region_are_preserved():
    doc = PAGE.replace('<span id="last-updated">never</span>', "")
    region = find_region(doc, "content")
    assert region is not None

    html, path = inject_content(doc, "Venus spins backwards.")
    assert path is ContentPath.REPLACED
    assert html.startswith(doc[:region.start])
    assert html.endswith(doc[region.end:])
    assert "Old fact." not in html


def test_indentation_follows_the_region_line():
    html = inject(PAGE, "A day on Venus is longer than its year.", NOW).html
    assert ('        <div id="content" class="text-lg text-gray-700">\n'
            '            <p>A day on Venus is longer than its year.</p>\n'
            '        </div>\n') in html


def test_start_tag_attributes_kept_verbatim():
    doc = "<body><div  class='a b' id=\"content\" style=\"color:red\">x</div></body>"
    html = inject(doc, "fact", NOW).html
    assert html.startswith("<body><div  class='a b' id=\"content\" style=\"color:red\">\n")


def test_nested_divs_are_replaced_with_the_region():
    doc = ('<body><div id="content" class="c"><div class="inner"><div>deep</div></div>tail</div>'
           '<div id="other">stay</div></body>')
    html = inject(doc, "New.", NOW).html
    assert html == '<body><div id="content" class="c">\n    <p>New.</p>\n</div><div id="other">stay</div></body>'


def test_only_first_matching_region_is_replaced():
    doc = '<body><div id="content">one</div><div id="content">two</div></body>'
    html = inject(doc, "F", NOW).html
    assert html == '<body><div id="content">\n    <p>F</p>\n</div><div id="content">two</div></body>'


def test_same_fact_twice_gives_identical_content_region():
    first = inject(PAGE, "Saturn would float in water.", NOW)
    second = inject(first.html, "Saturn would float in water.", LATER)

    r1 = find_region(first.html, "content")
    r2 = find_region(second.html, "content")
    assert first.html[r1.start:r1.end] == second.html[r2.start:r2.end]
    assert first.html[:r1.end] == second.html[:r2.end]
    assert format_timestamp(LATER) in second.html
    assert format_timestamp(NOW) not in second.html


def test_fallback_inserts_before_closing_body():
    doc = "<html>\n<body>\n<h1>No region</h1>\n</body>\n</html>\n"
    result = inject(doc, "Jupiter has rings.", NOW)

    assert result.content_path is ContentPath.FALLBACK_BODY
    assert result.used_fallback
    assert result.html == ("<html>\n<body>\n<h1>No region</h1>\n"
                           '<div id="content" class="text-lg text-gray-700 leading-relaxed">'
                           "<p>Jupiter has rings.</p></div>\n</body>\n</html>\n")
    assert result.html.count('id="content"') == 1


def test_fallback_matches_uppercase_body():
    doc = "<HTML><BODY>x</BODY></HTML>"
    result = inject(doc, "F", NOW)
    assert result.content_path is ContentPath.FALLBACK_BODY
    assert result.html.endswith('<p>F</p></div>\n</BODY></HTML>')


def test_fallback_appends_without_body():
    doc = "<p>fragment</p>"
    result = inject(doc, "F", NOW)
    assert result.content_path is ContentPath.FALLBACK_APPEND
    assert result.html.startswith(doc)
    assert result.html.endswith("<p>F</p></div>\n")


def test_markup_inside_script_is_not_a_region():
    doc = "<body><script>var s = '<div id=\"content\">x</div>';</script></body>"
    result = inject(doc, "F", NOW)
    assert result.content_path is ContentPath.FALLBACK_BODY
    assert "<script>var s = '<div id=\"content\">x</div>';</script>" in result.html


def test_unclosed_region_falls_back():
    doc = '<body><div id="content">never closed'
    result = inject(doc, "F", NOW)
    assert result.content_path is ContentPath.FALLBACK_APPEND


def test_html_sensitive_characters_are_inserted_verbatim():
    html = inject(PAGE, "Tom & Jerry say 1 < 2 <b>bold</b>", NOW).html
    assert "<p>Tom & Jerry say 1 < 2 <b>bold</b></p>" in html


def test_empty_fact():
    html = inject('<div id="content">x</div>', "", NOW).html
    assert html == '<div id="content">\n    <p></p>\n</div>'


def test_missing_timestamp_is_left_alone():
    doc = '<body><div id="content">x</div><span id="updated">keep</span></body>'
    result = inject(doc, "F", NOW)
    assert not result.timestamp_updated
    assert '<span id="updated">keep</span>' in result.html


def test_timestamp_reflects_latest_now():
    result = inject(PAGE, "F", LATER)
    assert '<span id="last-updated">' + format_timestamp(LATER) + "</span>" in result.html


def test_format_timestamp_fields():
    stamp = format_timestamp(NOW)
    assert "5, 2026" in stamp
    assert "09:05:03" in stamp
    assert stamp.endswith("AM")
    assert format_timestamp(LATER).endswith("09:30:00 PM")


def test_find_region_offsets():
    doc = 'ab<span id="last-updated">old</span>cd'
    region = find_region(doc, "last-updated")
    assert region.tag == "span"
    assert doc[region.start:region.inner_start] == '<span id="last-updated">'
    assert doc[region.inner_start:region.inner_end] == "old"
    assert doc[region.end:] == "cd"


def test_find_region_across_lines():
    doc = 'line one\n  line two <div id="content">\n\tinner\n</div>\nafter'
    region = find_region(doc, "content")
    assert doc[region.start:region.end] == '<div id="content">\n\tinner\n</div>'


def test_unclosed_tag_in_fact_is_stable_across_runs():
    fact = "Astronomers wrap data in a <div> tag."
    first = inject(PAGE, fact, NOW)
    second = inject(first.html, fact, NOW)

    assert second.content_path is ContentPath.REPLACED
    assert second.html == first.html
    assert second.html.count('id="content"') == 1


def test_stray_closing_tag_in_fact_is_stable_across_runs():
    fact = "a </div> b"
    first = inject(PAGE, fact, NOW)
    second = inject(first.html, fact, NOW)

    assert second.content_path is ContentPath.REPLACED
    assert second.html == first.html
    assert " b</p>\n        </div>\n        <p>Last updated" in second.html


def test_unbalanced_fact_inside_wrapper_keeps_siblings():
    page = ('<body>\n<div class="wrap">\n    <div id="content">\n        <p>old</p>\n    </div>\n'
            '    <span id="last-updated">x</span>\n</div>\n</body>')
    fact = "Open <div> never closed"
    first = inject(page, fact, NOW)
    second = inject(first.html, "Plain fact.", NOW)

    assert second.content_path is ContentPath.REPLACED
    assert second.html == ('<body>\n<div class="wrap">\n    <div id="content">\n        <p>Plain fact.</p>\n'
                           '    </div>\n    <span id="last-updated">' + format_timestamp(NOW) + '</span>\n</div>\n</body>')


def test_open_region_at_eof_uses_first_closing_tag():
    doc = '<div id="content"><div>a</div><p>rest</p>'
    html, path = inject_content(doc, "F")
    assert path is ContentPath.REPLACED
    assert html == '<div id="content">\n    <p>F</p>\n</div><p>rest</p>'


def test_closing_tag_case_is_kept():
    html, _ = inject_content('<body><DIV id="content">x</DIV></body>', "F")
    assert html == '<body><DIV id="content">\n    <p>F</p>\n</DIV></body>'
