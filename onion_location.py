"""
Validation of Onion-Location web-server configuration recipes.

The deliverable is a configuration pattern rather than a running server, so
the checks work on configuration text: every Onion-Location declaration is
found by pattern matching, expanded the way nginx or Apache would expand it
for a request, and tested against each compliance clause independently.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Tuple

from errors import NonCompliantHeaderConfig
from link_validator import ONION_SUFFIX, extract_host, is_valid_onion_address

HEADER_NAME = "Onion-Location"

HEADER_DIRECTIVE = "header_directive"
ALWAYS_FLAG = "always_flag"
REQUEST_URI = "request_uri"
ONION_SCHEME = "onion_scheme"
VARIABLE_INDIRECTION = "variable_indirection"

# Two distinct request targets; a value that ends in both was built from
# the request URI rather than from a hard-coded path.
_PROBE_TARGETS = ("/search?q=x", "/about/contact?page=2&lang=en")

_NGINX_ADD_HEADER = re.compile(
    r"\badd_header\s+(?P<name>[^\s;]+)\s+(?P<value>\"[^\"]*\"|'[^']*'|[^\s;]+)(?P<flags>[^;]*);"
)
_NGINX_SET = re.compile(r"\bset\s+\$(?P<var>\w+)\s+(?P<value>\"[^\"]*\"|'[^']*'|[^\s;]+)\s*;")
_NGINX_VAR_REF = re.compile(r"\$\{?(\w+)\}?")

_APACHE_HEADER = re.compile(
    r"^\s*Header\s+(?:(?P<condition>always|onsuccess)\s+)?set\s+(?P<name>\S+)\s+(?P<value>\"[^\"]*\"|\S+)",
    re.MULTILINE,
)
_APACHE_DEFINE = re.compile(r"^\s*Define\s+(?P<var>\w+)\s+(?P<value>\"[^\"]*\"|\S+)", re.MULTILINE)
_APACHE_VAR_REF = re.compile(r"\$\{(\w+)\}")
_APACHE_REQUEST_URI = re.compile(r"%\{REQUEST_URI\}[a-z]?")

_SCHEME_HOST = re.compile(r"^https?://(?P<host>[^/?#\s]*)")
_PLACEHOLDER_START = re.compile(r"\$|%\{")


@dataclass(frozen=True)
class Assignment:
    name: str
    value: str
    offset: int
    blocks: Tuple[int, ...] = ()


@dataclass(frozen=True)
class HeaderDeclaration:
    """One Onion-Location header directive found in configuration text."""
    dialect: str
    value: str
    always: bool
    offset: int
    blocks: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ConfigContext:
    declarations: Tuple[HeaderDeclaration, ...]
    assignments: Tuple[Assignment, ...]

    def variables_for(self, declaration: HeaderDeclaration) -> Dict[str, str]:
        """
        Resolves variables as seen by a declaration: only assignments in
        front of it, in the same block or an enclosing one, are visible,
        and the nearest of those wins.
        """
        variables = {}
        for assignment in self.assignments:
            if assignment.offset >= declaration.offset:
                break
            if declaration.blocks[:len(assignment.blocks)] == assignment.blocks:
                variables[assignment.name] = assignment.value
        return variables


@dataclass(frozen=True)
class Clause:
    id: str
    description: str
    check: Callable[[HeaderDeclaration, ConfigContext], bool]


@dataclass
class ValidationReport:
    """Outcome of each clause, in the order the clauses were evaluated."""
    results: Dict[str, bool] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(self.results.values())

    @property
    def failed(self) -> FrozenSet[str]:
        return frozenset(clause for clause, ok in self.results.items() if not ok)

    def raise_for_failures(self):
        if not self.passed:
            raise NonCompliantHeaderConfig(self.failed)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _strip_comments(text: str) -> str:
    # Blank out comment lines so offsets still line up with the original text
    return "\n".join(" " * len(line) if line.lstrip().startswith("#") else line for line in text.split("\n"))


def _block_path(text: str, offset: int) -> Tuple[int, ...]:
    """Offsets of the "{" still open in front of offset, outermost first."""
    stack = []
    for position, char in enumerate(text[:offset]):
        if char == "{":
            stack.append(position)
        elif char == "}" and stack:
            stack.pop()
    return tuple(stack)


def parse_config(text: str) -> ConfigContext:
    """Finds every Onion-Location declaration and variable assignment."""
    text = _strip_comments(text)
    declarations = []
    for match in _NGINX_ADD_HEADER.finditer(text):
        if match.group("name") != HEADER_NAME:
            continue
        declarations.append(HeaderDeclaration(
            dialect="nginx",
            value=_unquote(match.group("value")),
            always="always" in match.group("flags").split(),
            offset=match.start(),
            blocks=_block_path(text, match.start()),
        ))
    for match in _APACHE_HEADER.finditer(text):
        if match.group("name") != HEADER_NAME:
            continue
        declarations.append(HeaderDeclaration(
            dialect="apache",
            value=_unquote(match.group("value")),
            always=match.group("condition") == "always",
            offset=match.start(),
            blocks=_block_path(text, match.start()),
        ))

    assignments = [
        Assignment(m.group("var"), _unquote(m.group("value")), m.start(), _block_path(text, m.start()))
        for pattern in (_NGINX_SET, _APACHE_DEFINE)
        for m in pattern.finditer(text)
    ]
    return ConfigContext(
        declarations=tuple(sorted(declarations, key=lambda d: d.offset)),
        assignments=tuple(sorted(assignments, key=lambda a: a.offset)),
    )


def _nginx_request_variables(request_uri: str) -> Dict[str, str]:
    # $request_uri, or the equivalent $uri$is_args$args spelling
    path, separator, query = request_uri.partition("?")
    return {
        "request_uri": request_uri,
        "uri": path,
        "is_args": "?" if separator else "",
        "args": query,
        "query_string": query,
    }


NGINX_REQUEST_VARIABLES = frozenset(_nginx_request_variables(""))


def render_header_value(value: str, variables: Dict[str, str], request_uri: str, dialect: str = "nginx") -> str:
    """
    Expands a header value for one request, as the server would.

    Unknown variables are left in place so the result fails the scheme
    check instead of silently producing a URL.
    """
    if dialect == "apache":
        value = _APACHE_REQUEST_URI.sub(lambda _: request_uri, value)
        return _APACHE_VAR_REF.sub(lambda m: variables.get(m.group(1), m.group(0)), value)

    request_vars = _nginx_request_variables(request_uri)

    def substitute(match):
        name = match.group(1)
        if name in request_vars:
            return request_vars[name]
        return variables.get(name, match.group(0))

    return _NGINX_VAR_REF.sub(substitute, value)


def _render(declaration: HeaderDeclaration, context: ConfigContext, request_uri: str) -> str:
    return render_header_value(declaration.value, context.variables_for(declaration), request_uri, declaration.dialect)


def _referenced_variables(declaration: HeaderDeclaration) -> List[str]:
    pattern = _APACHE_VAR_REF if declaration.dialect == "apache" else _NGINX_VAR_REF
    return [name for name in pattern.findall(declaration.value) if name not in NGINX_REQUEST_VARIABLES]


def _check_request_uri(declaration: HeaderDeclaration, context: ConfigContext) -> bool:
    return all(_render(declaration, context, probe).endswith(probe) for probe in _PROBE_TARGETS)


def _check_onion_scheme(declaration: HeaderDeclaration, context: ConfigContext) -> bool:
    rendered = _render(declaration, context, "/")
    match = _SCHEME_HOST.match(rendered)
    if not match:
        return False
    host = extract_host(match.group("host"))
    if not host.endswith(ONION_SUFFIX):
        return False
    # Only a host written out literally gets the full v3 format check
    literal = _SCHEME_HOST.match(declaration.value)
    if literal and _PLACEHOLDER_START.split(literal.group("host"))[0]:
        return is_valid_onion_address(host)
    return True


def _check_variable_indirection(declaration: HeaderDeclaration, context: ConfigContext) -> bool:
    variables = context.variables_for(declaration)
    return any(ONION_SUFFIX in variables.get(name, "") for name in _referenced_variables(declaration))


CLAUSES = [
    Clause(HEADER_DIRECTIVE, "declares an Onion-Location header", lambda d, c: True),
    Clause(ALWAYS_FLAG, "applies the header on error responses too", lambda d, c: d.always),
    Clause(REQUEST_URI, "preserves the request path and query", _check_request_uri),
    Clause(ONION_SCHEME, "points at an http(s) .onion URL", _check_onion_scheme),
    Clause(VARIABLE_INDIRECTION, "reads the onion address from a variable", _check_variable_indirection),
]


def validate_config(text: str) -> ValidationReport:
    """
    Checks configuration text against every Onion-Location clause.

    A clause is satisfied when any declaration in the text satisfies it;
    a recipe document normally carries several alternative examples.

    Args:
        text (str): nginx or Apache configuration, or a mix of examples.

    Returns:
        ValidationReport: Per-clause results. Never raises.
    """
    context = parse_config(text)
    report = ValidationReport()
    for clause in CLAUSES:
        report.results[clause.id] = any(clause.check(d, context) for d in context.declarations)
    return report


def check_header_value(value: str) -> ValidationReport:
    """Checks a single emitted Onion-Location header value."""
    match = _SCHEME_HOST.match(value)
    host = extract_host(match.group("host")) if match else ""
    return ValidationReport(results={
        "scheme": bool(match),
        "onion_domain": len(host) > len(ONION_SUFFIX) and host.endswith(ONION_SUFFIX),
        "v3_address": is_valid_onion_address(host),
    })


def _server_blocks(text: str) -> int:
    return len(re.findall(r"\bserver\s*\{", text))


# Structure and best-practice checks for the shipped nginx recipe document
DOCUMENT_RULES: List[Tuple[str, Callable[[str], bool]]] = [
    ("explains_header", lambda t: HEADER_NAME in t and "# " in t),
    ("server_block", lambda t: _server_blocks(t) > 0),
    ("ssl_listener", lambda t: "listen 443 ssl" in t and "ssl_certificate" in t),
    ("server_name", lambda t: bool(re.search(r"\bserver_name\b", t))),
    ("http2", lambda t: "http2" in t),
    ("location_block", lambda t: bool(re.search(r"\blocation\s+[/\\]", t))),
    ("security_notes", lambda t: bool(re.search(r"security", t, re.IGNORECASE))),
    ("best_practice_notes", lambda t: bool(re.search(r"best practice", t, re.IGNORECASE))),
    ("proxy_example", lambda t: "proxy_pass" in t and "proxy_set_header" in t),
    ("multiple_examples", lambda t: _server_blocks(t) > 2),
    ("conditional_example", lambda t: bool(re.search(r"\bif\s*\(", t))),
]


def audit_nginx_document(text: str) -> ValidationReport:
    return ValidationReport(results={rule: check(text) for rule, check in DOCUMENT_RULES})


def load_config_document(path: str) -> str:
    """Reads a configuration recipe. I/O errors propagate to the caller."""
    with open(path, encoding="utf-8") as f:
        content = f.read()
    logging.info(f"[*] Loaded configuration document: {path} ({len(content)} bytes)")
    return content


if __name__ == "__main__":
    import sys
    import config

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(message)s')

    path = sys.argv[1] if len(sys.argv) > 1 else config.NGINX_RECIPE_PATH
    document = load_config_document(path)

    report = validate_config(document)
    for clause in CLAUSES:
        marker = "[+]" if report.results[clause.id] else "[!]"
        logging.info(f"{marker} {clause.id}: {clause.description}")

    audit = audit_nginx_document(document)
    for rule in sorted(audit.failed):
        logging.warning(f"[!] Recipe check failed: {rule}")

    sys.exit(0 if report.passed and audit.passed else 1)
