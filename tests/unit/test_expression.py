"""Tests for the agentic_ops.expression engine."""

import pytest

from agentic_ops.expression import (
    Binary,
    Call,
    Context,
    EvalError,
    ExpressionError,
    Literal,
    Not,
    ParseError,
    PropertyPath,
    TokenType,
    evaluate,
    is_truthy,
    parse,
    to_text,
    tokenize,
    validate_expression,
    validate_template,
    values_equal,
)


@pytest.fixture
def ctx():
    return Context(
        event={
            "tool": {"name": "bash", "args": {"command": "git commit -m 'x'"}},
            "file": {"path": "src/main.go", "action": "edit"},
            "commit": {
                "sha": "abc123",
                "files": [{"path": "a.go", "status": "added"}, {"path": "b.md", "status": "modified"}],
            },
            "count": 5,
            "tags": ["alpha", "Beta"],
        },
        env={"CI": "true", "DEPLOY-TARGET": "prod", "EMPTY": ""},
    )


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

class TestTokenize:

    def test_token_stream(self):
        types = [t.type for t in tokenize("event.x == 'a' && !y")]
        assert types == [
            TokenType.IDENTIFIER, TokenType.DOT, TokenType.IDENTIFIER, TokenType.EQ,
            TokenType.STRING, TokenType.AND, TokenType.NOT, TokenType.IDENTIFIER, TokenType.EOF,
        ]

    def test_two_char_operators_win(self):
        types = [t.type for t in tokenize("a <= b >= c != d || e")]
        assert TokenType.LE in types
        assert TokenType.GE in types
        assert TokenType.NE in types
        assert TokenType.OR in types
        assert TokenType.LT not in types

    def test_escaped_quote_in_string(self):
        token = tokenize("'it''s'")[0]
        assert token.type == TokenType.STRING
        assert token.value == "it's"

    def test_identifier_with_hyphen(self):
        token = tokenize("MY-VAR")[0]
        assert token.value == "MY-VAR"

    def test_positions(self):
        tokens = tokenize("a == 'b'")
        assert [t.position for t in tokens[:3]] == [0, 2, 5]

    def test_unterminated_string(self):
        with pytest.raises(ParseError, match="Unterminated"):
            tokenize("'abc")

    def test_unexpected_character(self):
        with pytest.raises(ParseError) as exc:
            tokenize("a = b")
        assert exc.value.position == 2

    def test_number_followed_by_letters(self):
        with pytest.raises(ParseError):
            tokenize("12abc")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class TestParse:

    def test_literals(self):
        assert parse("true") == Literal(True)
        assert parse("false") == Literal(False)
        assert parse("null") == Literal(None)
        assert parse("42") == Literal(42)
        assert parse("'hi'") == Literal("hi")

    def test_path(self):
        assert parse("event.commit.files.0.path") == PropertyPath(("event", "commit", "files", "0", "path"))

    def test_and_binds_tighter_than_or(self):
        assert parse("a || b && c") == Binary(
            "||", PropertyPath(("a",)), Binary("&&", PropertyPath(("b",)), PropertyPath(("c",)))
        )

    def test_not_binds_tightest(self):
        assert parse("!a == b") == Binary("==", Not(PropertyPath(("a",))), PropertyPath(("b",)))

    def test_parentheses_override(self):
        assert parse("(a || b) && c") == Binary(
            "&&", Binary("||", PropertyPath(("a",)), PropertyPath(("b",))), PropertyPath(("c",))
        )

    def test_call(self):
        assert parse("contains(a, 'x')") == Call("contains", (PropertyPath(("a",)), Literal("x")))

    def test_call_without_args(self):
        assert parse("always()") == Call("always", ())

    def test_empty(self):
        with pytest.raises(ParseError, match="Empty"):
            parse("")

    def test_whitespace_only(self):
        with pytest.raises(ParseError):
            parse("   ")

    def test_unbalanced_close(self):
        with pytest.raises(ParseError, match="Unbalanced"):
            parse("a == b)")

    def test_unclosed_paren(self):
        with pytest.raises(ParseError):
            parse("(a == b")

    def test_trailing_tokens(self):
        with pytest.raises(ParseError):
            parse("a b")

    def test_dangling_operator(self):
        with pytest.raises(ParseError):
            parse("a ==")

    def test_dot_without_name(self):
        with pytest.raises(ParseError):
            parse("event.")

    def test_parse_error_is_expression_error(self):
        with pytest.raises(ExpressionError):
            parse("&&")


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class TestEvaluateLiteralsAndPaths:

    def test_literals(self, ctx):
        assert ctx.evaluate("true") is True
        assert ctx.evaluate("null") is None
        assert ctx.evaluate("42") == 42
        assert ctx.evaluate("'hello'") == "hello"

    def test_event_path(self, ctx):
        assert ctx.evaluate("event.tool.name") == "bash"
        assert ctx.evaluate("event.file.path") == "src/main.go"

    def test_env_path(self, ctx):
        assert ctx.evaluate("env.CI") == "true"
        assert ctx.evaluate("env.DEPLOY-TARGET") == "prod"

    def test_list_index(self, ctx):
        assert ctx.evaluate("event.commit.files.1.path") == "b.md"

    def test_list_index_out_of_range(self, ctx):
        assert ctx.evaluate("event.commit.files.9.path") is None

    def test_missing_path_is_null(self, ctx):
        assert ctx.evaluate("event.push.ref") is None
        assert ctx.evaluate("env.MISSING") is None
        assert ctx.evaluate("event.file.path.deeper") is None

    def test_unknown_namespace_is_null(self, ctx):
        assert ctx.evaluate("github.ref") is None

    def test_missing_path_equals_null(self, ctx):
        assert ctx.evaluate("event.push == null") is True

    def test_empty_context(self):
        assert Context().evaluate("event.anything") is None


class TestEvaluateOperators:

    def test_string_equality_ignores_case(self, ctx):
        assert ctx.evaluate("event.tool.name == 'BASH'") is True
        assert ctx.evaluate("env.CI != 'TRUE'") is False

    def test_type_mismatch_is_unequal(self, ctx):
        assert ctx.evaluate("true == 1") is False
        assert ctx.evaluate("'5' == 5") is False
        assert ctx.evaluate("null == ''") is False

    def test_numbers(self, ctx):
        assert ctx.evaluate("event.count == 5") is True
        assert ctx.evaluate("event.count > 3") is True
        assert ctx.evaluate("event.count <= 4") is False
        assert ctx.evaluate("1 < 2") is True
        assert ctx.evaluate("2 >= 2") is True

    def test_relational_needs_numbers(self, ctx):
        with pytest.raises(EvalError):
            ctx.evaluate("'a' < 'b'")
        with pytest.raises(EvalError):
            ctx.evaluate("event.missing > 1")

    def test_logic(self, ctx):
        assert ctx.evaluate("true && false") is False
        assert ctx.evaluate("true || false") is True
        assert ctx.evaluate("!false") is True
        assert ctx.evaluate("!!'x'") is True

    def test_logic_returns_bool(self, ctx):
        assert ctx.evaluate("'a' && 'b'") is True
        assert ctx.evaluate("'' || 0") is False

    def test_and_short_circuits(self, ctx):
        assert ctx.evaluate("false && 'a' < 'b'") is False

    def test_or_short_circuits(self, ctx):
        assert ctx.evaluate("true || 'a' < 'b'") is True

    def test_parentheses(self, ctx):
        assert ctx.evaluate("(true || false) && false") is False
        assert ctx.evaluate("true || (false && false)") is True

    def test_not_of_missing(self, ctx):
        assert ctx.evaluate("!event.push") is True


class TestTruthiness:

    def test_falsy_values(self):
        for value in (None, False, 0, 0.0, float("nan"), ""):
            assert is_truthy(value) is False

    def test_truthy_values(self):
        for value in (True, 1, -1, 0.5, "false", "0", [], {}):
            assert is_truthy(value) is True

    def test_evaluate_bool(self, ctx):
        assert ctx.evaluate_bool("env.CI") is True
        assert ctx.evaluate_bool("env.EMPTY") is False
        assert ctx.evaluate_bool("event.missing") is False
        assert ctx.evaluate_bool("event.tags") is True


class TestValueHelpers:

    def test_values_equal_numbers(self):
        assert values_equal(1, 1.0) is True

    def test_values_equal_lists(self):
        assert values_equal(["a"], ["a"]) is True
        assert values_equal(["a"], "a") is False

    def test_values_equal_non_ascii_case(self):
        # only ASCII letters are folded
        assert values_equal("ÄB", "äb") is False
        assert values_equal("ÄB", "Äb") is True

    def test_to_text(self):
        assert to_text(None) == ""
        assert to_text(False) == "false"
        assert to_text(3.0) == "3"
        assert to_text(1.5) == "1.5"
        assert to_text({"b": 1, "a": [True]}) == '{"a":[true],"b":1}'


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------

class TestFunctions:

    def test_contains_string(self, ctx):
        assert ctx.evaluate("contains(event.tool.args.command, 'GIT COMMIT')") is True
        assert ctx.evaluate("contains('hello', 'xyz')") is False

    def test_contains_array(self, ctx):
        assert ctx.evaluate("contains(event.tags, 'beta')") is True
        assert ctx.evaluate("contains(event.tags, 'gamma')") is False

    def test_contains_null(self, ctx):
        assert ctx.evaluate("contains(event.missing, 'x')") is False

    def test_starts_with(self, ctx):
        assert ctx.evaluate("startsWith(event.file.path, 'SRC/')") is True
        assert ctx.evaluate("startsWith(event.file.path, 'lib/')") is False

    def test_ends_with(self, ctx):
        assert ctx.evaluate("endsWith(event.file.path, '.go')") is True
        assert ctx.evaluate("endsWith(event.file.path, '.js')") is False

    def test_format(self, ctx):
        assert ctx.evaluate("format('Hello {0}', 'World')") == "Hello World"
        assert ctx.evaluate("format('{1}-{0}-{1}', 'a', 'b')") == "b-a-b"
        assert ctx.evaluate("format('{{literal}} {0}', 1)") == "{literal} 1"

    def test_format_missing_argument(self, ctx):
        with pytest.raises(EvalError):
            ctx.evaluate("format('{0} {1}', 'a')")

    def test_join(self, ctx):
        assert ctx.evaluate("join(event.tags)") == "alpha,Beta"
        assert ctx.evaluate("join(event.tags, ' | ')") == "alpha | Beta"

    def test_join_scalar(self, ctx):
        assert ctx.evaluate("join('solo', '-')") == "solo"

    def test_to_json(self, ctx):
        assert ctx.evaluate("toJSON(fromJSON('{\"key\": \"value\"}'))") == '{"key":"value"}'
        assert ctx.evaluate("toJSON(event.tags)") == '["alpha","Beta"]'

    def test_from_json(self, ctx):
        assert ctx.evaluate("fromJSON('[1, 2]')") == [1, 2]
        assert ctx.evaluate("fromJSON('true')") is True

    def test_from_json_invalid(self, ctx):
        with pytest.raises(EvalError):
            ctx.evaluate("fromJSON('{nope')")

    def test_always(self, ctx):
        assert ctx.evaluate("always()") is True

    def test_unknown_function(self, ctx):
        with pytest.raises(EvalError, match="Unknown function"):
            ctx.evaluate("nope(1)")

    def test_names_are_case_sensitive(self, ctx):
        with pytest.raises(EvalError):
            ctx.evaluate("StartsWith('a', 'a')")

    def test_wrong_arity(self, ctx):
        with pytest.raises(EvalError):
            ctx.evaluate("contains('a')")
        with pytest.raises(EvalError):
            ctx.evaluate("always(1)")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

class TestEvaluateString:

    def test_no_spans_unchanged(self, ctx):
        assert ctx.evaluate_string("plain text {{ not a span }}") == "plain text {{ not a span }}"

    def test_single_span(self, ctx):
        assert ctx.evaluate_string("file: ${{ event.file.path }}") == "file: src/main.go"

    def test_multiple_spans(self, ctx):
        assert ctx.evaluate_string("${{ event.tool.name }}@${{ env.DEPLOY-TARGET }}") == "bash@prod"

    def test_null_renders_empty(self, ctx):
        assert ctx.evaluate_string("[${{ event.missing }}]") == "[]"

    def test_bool_and_number(self, ctx):
        assert ctx.evaluate_string("${{ event.count > 1 }} ${{ event.count }}") == "true 5"

    def test_error_propagates(self, ctx):
        with pytest.raises(ParseError):
            ctx.evaluate_string("${{ event.( }}")


# ---------------------------------------------------------------------------
# Validation and purity
# ---------------------------------------------------------------------------

class TestValidateExpression:

    def test_valid(self):
        node = validate_expression("contains(event.file.path, 'x') && always()")
        assert isinstance(node, Binary)

    def test_unknown_function_caught_without_evaluating(self):
        # the right side would never run because of short-circuiting
        with pytest.raises(EvalError):
            validate_expression("false && nope()")

    def test_nested_arity(self):
        with pytest.raises(EvalError):
            validate_expression("!contains(join(event.tags), 'a', 'b')")

    def test_parse_error(self):
        with pytest.raises(ParseError):
            validate_expression("a ==")

    def test_template(self):
        validate_template("${{ event.x }} and ${{ always() }}")
        with pytest.raises(EvalError):
            validate_template("${{ bogus() }}")


class TestPurity:

    def test_same_tree_different_contexts(self):
        node = parse("event.n > 1")
        assert evaluate(node, Context(event={"n": 2})) is True
        assert evaluate(node, Context(event={"n": 0})) is False

    def test_context_not_mutated(self, ctx):
        before = repr(ctx.event)
        ctx.evaluate("fromJSON('[1]') && contains(event.tags, 'alpha')")
        assert repr(ctx.event) == before


# ---------------------------------------------------------------------------
# Malformed and hostile input
# ---------------------------------------------------------------------------

class TestNonAsciiDigits:
    """Only ASCII digits form numbers."""

    def test_superscript_digit_is_parse_error(self):
        with pytest.raises(ParseError):
            parse("event.x == ²")

    def test_arabic_indic_digit_is_parse_error(self):
        with pytest.raises(ParseError):
            tokenize("٣")

    def test_ascii_number_still_parses(self):
        assert parse("0123") == Literal(123)


class TestNestingLimit:

    def test_deep_not_chain(self):
        with pytest.raises(ParseError, match="nested"):
            parse("!" * 5000 + "true")

    def test_deep_parentheses(self):
        with pytest.raises(ParseError, match="nested"):
            parse("(" * 500 + "true" + ")" * 500)

    def test_deep_call_arguments(self):
        with pytest.raises(ParseError, match="nested"):
            parse("always(" * 200 + ")" * 200)

    def test_at_limit_parses(self):
        from agentic_ops.expression.parser import MAX_NESTING
        assert Context().evaluate("!" * MAX_NESTING + "true") is True
        assert Context().evaluate("(" * MAX_NESTING + "1" + ")" * MAX_NESTING) == 1

    def test_deep_built_tree_is_eval_error(self):
        node = Literal(True)
        for _ in range(20000):
            node = Not(node)
        with pytest.raises(EvalError):
            evaluate(node, Context())


class TestNullArguments:
    """An unset value never acts as the empty string in string tests."""

    def test_contains_null_needle(self, ctx):
        assert ctx.evaluate("contains(event.tool.args.command, env.FORBIDDEN)") is False

    def test_starts_with_null(self, ctx):
        assert ctx.evaluate("startsWith(event.file.path, env.MISSING)") is False
        assert ctx.evaluate("startsWith(event.missing, '')") is False

    def test_ends_with_null(self, ctx):
        assert ctx.evaluate("endsWith(event.file.path, env.MISSING)") is False
        assert ctx.evaluate("endsWith(event.missing, '')") is False

    def test_negated_null_contains(self, ctx):
        assert ctx.evaluate("!contains(event.tool.args.command, env.FORBIDDEN)") is True

    def test_array_membership_of_null(self):
        assert Context(event={"a": [None]}).evaluate("contains(event.a, null)") is True

    def test_empty_string_needle_still_matches(self, ctx):
        assert ctx.evaluate("contains(event.file.path, '')") is True


class TestTemplateBraces:
    """A span ends at the first `}}` outside a string literal."""

    def test_braces_inside_literal(self, ctx):
        assert ctx.evaluate_string("x ${{ format('{0}}}', 'a') }} y") == "x a} y"

    def test_json_in_template(self, ctx):
        text = "${{ toJSON(fromJSON('{\"a\":{\"b\":1}}')) }}"
        assert ctx.evaluate_string(text) == '{"a":{"b":1}}'

    def test_escaped_quote_inside_literal(self, ctx):
        assert ctx.evaluate_string("${{ 'it''s }}' }}!") == "it's }}!"

    def test_unclosed_span_kept(self, ctx):
        assert ctx.evaluate_string("a ${{ event.file.path") == "a ${{ event.file.path"

    def test_validate_template_with_braces(self):
        validate_template("${{ format('{{x}}', 1) }}")
