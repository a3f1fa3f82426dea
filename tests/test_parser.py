"""Tests for fragment reduction, normalization and ParsedRequest."""

import pytest

from curl_parser import grammar
from curl_parser.errors import (
    GrammarError,
    InvalidHeaderName,
    InvalidHeaderValue,
    InvalidMethod,
    InvalidUrl,
    TemplateRenderError,
    UnsupportedContentType,
)
from curl_parser.grammar import Fragment
from curl_parser.parser import (
    ParsedRequest,
    default_scheme,
    load,
    load_request_file,
    parse,
    reduce,
    remove_quote,
)


class TestParseCommands:
    """End-to-end parsing of realistic curl commands."""

    def test_github_patch_with_template(self):
        text = """curl \\
          -X PATCH \\
          -d '{"visibility":"private"}' \\
          -H "Accept: application/vnd.github+json" \\
          -H "Authorization: Bearer {{ token }}"\\
          -H "X-GitHub-Api-Version: 2022-11-28" \\
          https://api.github.com/user/email/visibility """
        parsed = load(text, {"token": "abcd1234"})
        assert parsed.method == "PATCH"
        assert parsed.url == "https://api.github.com/user/email/visibility"
        assert parsed.headers["Accept"] == "application/vnd.github+json"
        assert parsed.headers["Authorization"] == "Bearer abcd1234"
        assert parsed.data == ('{"visibility":"private"}',)

    def test_location_with_post_body(self):
        text = """curl \\
        -X POST \\
        -H "Accept: application/vnd.github+json" \\
        -H "Authorization: Bearer {{ token }}"\\
        -L "https://api.github.com/user/emails" \\
        -d '{"emails":["octocat@github.com","mona@github.com"]}'"""
        parsed = load(text, {"token": "abcd1234"})
        assert parsed.method == "POST"
        assert parsed.url == "https://api.github.com/user/emails"
        assert parsed.data == ('{"emails":["octocat@github.com","mona@github.com"]}',)

    def test_templated_basic_auth(self):
        text = """curl https://httpbin.org/basic-auth/testuser/testpass \\
        -u {{ username }}:{{ password }} \\
        -H "Accept: application/json\""""
        parsed = load(text, {"username": "testuser", "password": "testpass"})
        assert parsed.method == "GET"
        assert parsed.url == "https://httpbin.org/basic-auth/testuser/testpass"
        assert parsed.headers["Authorization"] == "Basic dGVzdHVzZXI6dGVzdHBhc3M="
        assert parsed.headers["Accept"] == "application/json"

    def test_quoted_url_with_scheme(self):
        parsed = parse('curl "https://ifconfig.me/"')
        assert parsed.method == "GET"
        assert parsed.url == "https://ifconfig.me/"

    def test_schemeless_url(self):
        parsed = parse("curl 'ifconfig.me'")
        assert parsed.url == "http://ifconfig.me/"

    def test_insecure_after_comment(self):
        parsed = parse("#this is good\n        curl -k 'https://example.com/'")
        assert parsed.url == "https://example.com/"
        assert parsed.insecure is True

    def test_long_location_and_json_body(self):
        text = (
            "curl --location https://example.com --header "
            "'Content-Type: application/json' "
            """-d '{"-name":"--John"," --age":30}'"""
        )
        parsed = parse(text)
        assert parsed.method == "POST"
        assert parsed.url == "https://example.com"
        assert parsed.data == ('{"-name":"--John"," --age":30}',)

    def test_escaped_json_in_header(self):
        text = r"""curl https://api.github.com/repos/owner/repo \
            -H "X-GitHub-Api-Version: 2022-11-28" \
            -H "X-Custom-Metadata: {\"version\":\"1.0.0\",\"client\":\"python\"}" \
            -H "Accept: application/json"
        """
        parsed = parse(text)
        assert parsed.method == "GET"
        assert parsed.headers["X-Custom-Metadata"] == (
            '{"version":"1.0.0","client":"python"}'
        )

    def test_parse_is_idempotent(self):
        text = "curl -H 'X: 1' -d a=1 -d b=2 -k example.com/p"
        assert parse(text) == parse(text)


class TestMethod:
    """Tests for method handling and the POST upgrade."""

    def test_default_get_without_body(self):
        parsed = parse("curl https://h")
        assert parsed.method == "GET"
        assert "Content-Type" not in parsed.headers

    def test_body_upgrades_to_post(self):
        assert parse("curl -d a=1 https://h").method == "POST"

    def test_explicit_get_with_body_is_kept(self):
        assert parse("curl -X GET -d a=1 https://h").method == "GET"

    def test_quoted_method(self):
        assert parse("curl -X 'DELETE' https://h").method == "DELETE"

    def test_last_method_wins(self):
        assert parse("curl -X PUT -X PATCH https://h").method == "PATCH"

    def test_invalid_method(self):
        with pytest.raises(InvalidMethod) as exc:
            parse("curl -X 'GE T' https://h")
        assert exc.value.raw == "'GE T'"


class TestUrl:
    """Tests for URL selection and scheme defaulting."""

    def test_scheme_defaulting_keeps_path(self):
        assert parse("curl example.com/p").url == "http://example.com/p"

    def test_explicit_scheme_unchanged(self):
        assert parse("curl 'https://example.com/p'").url == "https://example.com/p"

    def test_location_overrides_positional(self):
        assert parse("curl https://a.test -L https://b.test").url == "https://b.test"

    def test_positional_after_location_wins(self):
        assert parse("curl -L https://b.test https://a.test").url == "https://a.test"

    def test_last_location_wins(self):
        text = "curl -L https://a.test --location https://b.test"
        assert parse(text).url == "https://b.test"

    def test_schemeless_location(self):
        assert parse("curl -L b.test:8080").url == "http://b.test:8080/"

    def test_missing_url(self):
        with pytest.raises(InvalidUrl, match="URL is required"):
            parse("curl -X POST")

    def test_url_without_host(self):
        with pytest.raises(InvalidUrl):
            parse("curl 'http://'")

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("example.com", "http://example.com/"),
            ("example.com/", "http://example.com/"),
            ("example.com?q=1", "http://example.com/?q=1"),
            ("example.com#top", "http://example.com/#top"),
            ("localhost:3000/api", "http://localhost:3000/api"),
            ("ftp://example.com", "ftp://example.com"),
        ],
    )
    def test_default_scheme(self, raw, expected):
        assert default_scheme(raw) == expected


class TestHeaders:
    """Tests for header insertion and defaults."""

    def test_last_header_wins(self):
        parsed = parse("curl -H 'X: a' -H 'X: b' https://h")
        assert parsed.headers["X"] == "b"

    def test_header_names_are_case_insensitive(self):
        parsed = parse("curl -H 'x-token: a' -H 'X-Token: b' https://h")
        assert parsed.headers["x-token"] == "b"
        assert len([k for k in parsed.headers if k.lower() == "x-token"]) == 1

    def test_default_accept(self):
        assert parse("curl https://h").headers["Accept"] == "*/*"

    def test_explicit_accept_kept(self):
        parsed = parse("curl -H 'accept: text/html' https://h")
        assert parsed.headers["Accept"] == "text/html"

    def test_default_content_type_with_body(self):
        parsed = parse("curl -d a=1 https://h")
        assert parsed.headers["Content-Type"] == "application/x-www-form-urlencoded"

    def test_value_whitespace_trimmed_and_colon_kept(self):
        parsed = parse("curl -H '  Cookie :  session=abc:def  ' https://h")
        assert parsed.headers["Cookie"] == "session=abc:def"

    def test_escaped_quote_in_double_quoted_value(self):
        parsed = parse(r'curl -H "X-Quote: say \"hi\"" https://h')
        assert parsed.headers["X-Quote"] == 'say "hi"'

    def test_single_quoted_value_is_unescaped(self):
        parsed = parse(r"curl -H 'X-Quote: say \"hi\"' https://h")
        assert parsed.headers["X-Quote"] == 'say "hi"'

    def test_double_quoted_value_is_unescaped_once(self):
        parsed = parse(r'curl -H "X-Path: C:\\\\tmp" https://h')
        assert parsed.headers["X-Path"] == "C:\\\\tmp"

    def test_basic_auth(self):
        parsed = parse("curl -u user:pass https://h")
        assert parsed.headers["Authorization"] == "Basic dXNlcjpwYXNz"

    def test_later_header_overrides_auth(self):
        parsed = parse("curl -u user:pass -H 'Authorization: Bearer t' https://h")
        assert parsed.headers["Authorization"] == "Bearer t"

    def test_header_without_colon(self):
        with pytest.raises(GrammarError, match="no ':' separator"):
            parse("curl -H 'X-Broken' https://h")

    def test_invalid_header_name(self):
        with pytest.raises(InvalidHeaderName) as exc:
            parse("curl -H 'Bad Name: x' https://h")
        assert exc.value.raw == "Bad Name"

    def test_invalid_header_value(self):
        with pytest.raises(InvalidHeaderValue):
            parse(r'curl -H "X: a\nb" https://h')

    def test_non_ascii_header_value(self):
        with pytest.raises(InvalidHeaderValue) as exc:
            parse("curl -H 'X: caf\u00e9' https://h")
        assert exc.value.raw == "caf\u00e9"

    def test_tab_in_header_value_allowed(self):
        parsed = parse(r'curl -H "X: a\tb" https://h')
        assert parsed.headers["X"] == "a\tb"

    def test_unquoted_backslash_quote_in_header(self):
        parsed = parse(r"curl -H X:\"a\" https://h")
        assert parsed.headers["X"] == '"a"'

    def test_mixed_word_leaves_single_quoted_part_as_written(self):
        parsed = parse(r"""curl -H 'X: a\"b'"c" https://h""")
        assert parsed.headers["X"] == r'a\"bc'


class TestBody:
    """Tests for body fragments and the body() encoder."""

    def test_no_body(self):
        parsed = parse("curl https://h")
        assert parsed.data == ()
        assert parsed.body() is None

    def test_form_body(self):
        parsed = parse("curl -d name=John -d age=30 https://h")
        assert parsed.data == ("name=John", "age=30")
        assert parsed.body() == "name=John&age=30"

    def test_form_body_encoding(self):
        parsed = parse("curl -d 'q=hello world' -d 'next=/a&b' -d flag https://h")
        assert parsed.body() == "q=hello+world&next=%2Fa%26b&flag="

    def test_form_body_strips_quotes_per_side(self):
        parsed = parse("""curl -d "key='va lue'" https://h""")
        assert parsed.body() == "key=va+lue"

    def test_json_last_wins(self):
        text = (
            "curl -H 'Content-Type: application/json' "
            """-d '{"a":1}' -d '{"b":2}' https://h"""
        )
        parsed = parse(text)
        assert parsed.data == ('{"a":1}', '{"b":2}')
        assert parsed.body() == '{"b":2}'

    def test_body_is_repeatable(self):
        parsed = parse("curl -d a=1 https://h")
        assert parsed.body() == parsed.body()
        assert parsed.data == ("a=1",)

    def test_unsupported_content_type(self):
        parsed = parse("curl -H 'Content-Type: text/plain' -d hi https://h")
        with pytest.raises(UnsupportedContentType) as exc:
            parsed.body()
        assert exc.value.content_type == "text/plain"

    def test_body_trimmed_and_shell_quotes_removed_once(self):
        parsed = parse("""curl -d "  'abc'  " -d "'abc" https://h""")
        assert parsed.data == ("'abc'", "'abc")

    def test_json_string_body_keeps_its_quotes(self):
        text = """curl -H 'Content-Type: application/json' -d '"hello"' https://h"""
        assert parse(text).body() == '"hello"'

    def test_literal_quotes_in_form_fragment_kept(self):
        parsed = parse("""curl -d '"a=b"' https://h""")
        assert parsed.data == ('"a=b"',)

    def test_form_encoding_of_star_and_tilde(self):
        assert parse("curl -d 'a=*~' https://h").body() == "a=*%7E"

    def test_duplicate_bodies_kept_in_order(self):
        parsed = parse("curl -d b=2 -d a=1 -d b=2 https://h")
        assert parsed.data == ("b=2", "a=1", "b=2")


class TestTemplating:
    """Tests for load() and the template pre-pass."""

    def test_bearer_token(self):
        parsed = load("curl -H 'Authorization: Bearer {{ token }}' https://h", {"token": "T"})
        assert parsed.headers["Authorization"] == "Bearer T"

    def test_dotted_path(self):
        parsed = load(
            """curl -d '{"id": "{{ user.id }}"}' -H 'Content-Type: application/json' https://h""",
            {"user": {"id": 42}},
        )
        assert parsed.body() == '{"id": "42"}'

    def test_undefined_variable(self):
        with pytest.raises(TemplateRenderError):
            load("curl https://h/{{ missing }}", {})

    def test_bad_template_syntax(self):
        with pytest.raises(TemplateRenderError):
            load("curl https://h/{{ broken", {"broken": 1})

    def test_no_context_is_passthrough(self):
        assert load("curl https://h", None) == parse("curl https://h")


class TestReduce:
    """Tests for the reducer on hand-built fragment streams."""

    def test_stops_at_eoi(self):
        acc = reduce([
            Fragment(grammar.URL, "https://a.test"),
            Fragment(grammar.EOI),
            Fragment(grammar.URL, "https://b.test"),
        ])
        assert acc.url == "https://a.test"

    def test_body_without_shell_quotes_loses_one_layer(self):
        acc = reduce([Fragment(grammar.BODY, '"x"')])
        assert acc.data == ["x"]

    def test_body_with_shell_quotes_removed_is_kept(self):
        acc = reduce([Fragment(grammar.BODY, '"x"', quoted=True)])
        assert acc.data == ['"x"']

    def test_insecure_is_idempotent(self):
        acc = reduce([Fragment(grammar.INSECURE), Fragment(grammar.INSECURE)])
        assert acc.insecure is True

    def test_unknown_kind(self):
        with pytest.raises(RuntimeError, match="Unexpected fragment kind"):
            reduce([Fragment("cookie", "a=b")])


class TestParsedRequest:
    """Tests for the ParsedRequest value."""

    def test_is_read_only(self):
        parsed = parse("curl https://h")
        with pytest.raises(AttributeError):
            parsed.method = "POST"

    def test_defaults(self):
        req = ParsedRequest()
        assert req.method == "GET"
        assert req.data == ()
        assert req.insecure is False

    def test_repr(self):
        req = ParsedRequest("POST", "https://h/", {"Accept": "*/*"}, ["a=1"])
        r = repr(req)
        assert "POST" in r
        assert "https://h/" in r
        assert "<1 headers>" in r
        assert "<1 parts>" in r

    def test_to_dict(self):
        parsed = parse("curl -k -d a=1 https://h")
        assert parsed.to_dict() == {
            "method": "POST",
            "url": "https://h",
            "headers": {
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "*/*",
            },
            "data": ["a=1"],
            "insecure": True,
        }

    def test_remove_quote(self):
        assert remove_quote("'a'") == "a"
        assert remove_quote('"a"') == "a"
        assert remove_quote("'a\"") == "'a\""
        assert remove_quote("'") == "'"
        assert remove_quote("a") == "a"


class TestLoadRequestFile:
    """Tests for load_request_file function."""

    def test_load_valid_file(self, tmp_path):
        f = tmp_path / "req.curl"
        f.write_text("curl -k https://h\n")
        content = load_request_file(str(f))
        assert "curl -k" in content

    def test_load_nonexistent_file(self):
        with pytest.raises(FileNotFoundError):
            load_request_file("/nonexistent/path/file.curl")
