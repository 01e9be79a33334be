import re

from .errors import EmptyFormulaError, ParseError
from .nodes import (
    BinaryOp, CellIdentifier, FunctionCall, NumberLiteral, RangeExpression, UnaryOp,
)

# ====================================================
# Tokenizer
# ====================================================

NUMBER = 'NUMBER'
IDENTIFIER = 'IDENTIFIER'
KEYWORD_TO = 'TO'
OPERATOR = 'OPERATOR'
LPAREN = 'LPAREN'
RPAREN = 'RPAREN'
COMMA = 'COMMA'
EOF = 'EOF'

TOKEN_PATTERN = re.compile(r"""
    (?P<space>\s+)
  | (?P<number>(?:\d+(?:\.\d+)?|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>[-+*/^])
  | (?P<punct>[(),])
""", re.VERBOSE)

PUNCTUATION = {'(': LPAREN, ')': RPAREN, ',': COMMA}

# Deepest allowed nesting of parentheses, call arguments, unary minus and
# exponents; each level costs several stack frames while parsing.
MAX_NESTING = 64


class Token:
    def __init__(self, type, value, position):
        self.type = type          # one of the token type constants above
        self.value = value        # float for numbers, text otherwise
        self.position = position  # offset in the formula text

    def __repr__(self):
        return f"Token({self.type}, {self.value!r}, pos={self.position})"


def tokenize(text):
    tokens = []
    pos = 0
    while pos < len(text):
        match = TOKEN_PATTERN.match(text, pos)
        if match is None:
            raise ParseError(f"Unrecognized character {text[pos]!r} at position {pos}",
                             fragment=text[pos:], position=pos)
        kind = match.lastgroup
        lexeme = match.group()
        if kind == 'number':
            # "3." and "3.x" are not numbers
            if match.end() < len(text) and text[match.end()] == '.':
                raise ParseError(f"Malformed number {text[pos:match.end() + 1]!r}",
                                 fragment=text[pos:], position=pos)
            tokens.append(Token(NUMBER, float(lexeme), pos))
        elif kind == 'name':
            if lexeme.lower() == 'to':
                tokens.append(Token(KEYWORD_TO, lexeme, pos))
            else:
                tokens.append(Token(IDENTIFIER, lexeme, pos))
        elif kind == 'op':
            tokens.append(Token(OPERATOR, lexeme, pos))
        elif kind == 'punct':
            tokens.append(Token(PUNCTUATION[lexeme], lexeme, pos))
        pos = match.end()
    tokens.append(Token(EOF, None, len(text)))
    return tokens


# ====================================================
# Recursive descent parser
# ====================================================

class FormulaParser:
    """
    Parses one formula into an AST.

    Precedence, lowest first: "to", + -, * /, unary minus, ^ (right-associative).
    """

    def __init__(self, text):
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0
        self.depth = 0

    def parse(self):
        node = self.parse_range()
        if self.current.type != EOF:
            self.error(f"Unexpected {self.describe(self.current)} after expression")
        return node

    @property
    def current(self):
        return self.tokens[self.pos]

    def advance(self):
        token = self.tokens[self.pos]
        if token.type != EOF:
            self.pos += 1
        return token

    def check(self, type, value=None):
        token = self.current
        return token.type == type and (value is None or token.value == value)

    def match(self, type, value=None):
        if self.check(type, value):
            return self.advance()
        return None

    def expect(self, type, what):
        if self.check(type):
            return self.advance()
        self.error(f"Expected {what}, found {self.describe(self.current)}")

    def describe(self, token):
        if token.type == EOF:
            return "end of formula"
        return repr(token.value)

    def nested(self, parse_method):
        self.depth += 1
        if self.depth > MAX_NESTING:
            self.error(f"Formula nested more than {MAX_NESTING} levels deep")
        try:
            return parse_method()
        finally:
            self.depth -= 1

    def error(self, message):
        token = self.current
        raise ParseError(message, fragment=self.text[token.position:], position=token.position)

    def parse_range(self):
        left = self.parse_addsub()
        if self.match(KEYWORD_TO):
            right = self.parse_addsub()
            return RangeExpression(left, right)
        return left

    def parse_addsub(self):
        node = self.parse_term()
        while self.check(OPERATOR, '+') or self.check(OPERATOR, '-'):
            op = self.advance().value
            node = BinaryOp(op, node, self.parse_term())
        return node

    def parse_term(self):
        node = self.parse_unary()
        while self.check(OPERATOR, '*') or self.check(OPERATOR, '/'):
            op = self.advance().value
            node = BinaryOp(op, node, self.parse_unary())
        return node

    def parse_unary(self):
        if self.match(OPERATOR, '-'):
            return UnaryOp('-', self.nested(self.parse_unary))
        return self.parse_power()

    def parse_power(self):
        base = self.parse_atom()
        if self.match(OPERATOR, '^'):
            # Right-associative; the exponent may be negated (2 ^ -1).
            if self.check(OPERATOR, '-'):
                exponent = self.nested(self.parse_unary)
            else:
                exponent = self.nested(self.parse_power)
            return BinaryOp('^', base, exponent)
        return base

    def parse_atom(self):
        token = self.current
        if self.match(NUMBER):
            return NumberLiteral(token.value)
        if self.match(IDENTIFIER):
            if self.match(LPAREN):
                args = []
                if not self.check(RPAREN):
                    args.append(self.nested(self.parse_range))
                    while self.match(COMMA):
                        args.append(self.nested(self.parse_range))
                self.expect(RPAREN, "')' after function arguments")
                return FunctionCall(token.value, tuple(args))
            return CellIdentifier(token.value)
        if self.match(LPAREN):
            node = self.nested(self.parse_range)
            self.expect(RPAREN, "')' after expression")
            return node
        self.error(f"Expected expression, found {self.describe(token)}")


def parse(text):
    """Parse formula text into an AST, raising ParseError on malformed input."""
    if text is None or not text.strip():
        raise EmptyFormulaError()
    return FormulaParser(text).parse()
