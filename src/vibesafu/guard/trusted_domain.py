"""Trusted domain verification for network checkpoints.

A command is only "all trusted" when every network endpoint it touches is on
the allowlist.  Endpoints come from three places:

- URLs written anywhere in the command (any scheme)
- the target arguments of fetch tools (curl, wget, ...), with or without a
  scheme, including targets nested in ``sh -c "..."`` or ``$(...)``
- remote access tools (ssh, scp, rsync, netcat, ...), which are never
  verifiable and always block the downgrade
"""

from __future__ import annotations

import re
import shlex
from urllib.parse import urlsplit

from vibesafu.guard.checkpoint import REMOTE_ACCESS_RULES
from vibesafu.guard.domains import TRUSTED_DOMAINS
from vibesafu.guard.models import DomainVerification

# scheme://host[:port][/path]; stops at whitespace, quotes and shell operators
_URL_PATTERN = re.compile(r"\b[a-z][a-z0-9+.-]*://[^\s\"'`<>|;&()\\]+", re.IGNORECASE)

_FETCH_TOOLS = {
    "curl": "curl",
    "wget": "wget",
    "aria2c": "aria2c",
    "iwr": "powershell",
    "irm": "powershell",
    "invoke-webrequest": "powershell",
    "invoke-restmethod": "powershell",
}

# Options whose value is a file, header, payload or tuning knob, not a host
_VALUE_OPTIONS: dict[str, frozenset[str]] = {
    "curl": frozenset(
        {
            "-o", "--output", "-d", "--data", "--data-binary", "--data-raw",
            "--data-urlencode", "-H", "--header", "-u", "--user", "-A", "--user-agent",
            "-e", "--referer", "-X", "--request", "-F", "--form", "-T", "--upload-file",
            "-w", "--write-out", "-b", "--cookie", "-c", "--cookie-jar", "-m", "--max-time",
            "--connect-timeout", "--retry", "--retry-delay", "--retry-max-time", "-r",
            "--range", "-C", "--continue-at", "-E", "--cert", "--cacert", "--key",
            "--proto", "--proto-redir", "--proto-default", "--max-redirs", "--limit-rate",
            "--max-filesize", "--ciphers",
        }
    ),
    "wget": frozenset(
        {
            "-O", "--output-document", "-o", "--output-file", "-a", "--append-output",
            "-P", "--directory-prefix", "-t", "--tries", "-T", "--timeout", "-U",
            "--user-agent", "-e", "--execute", "--header", "--user", "--password",
            "--post-data", "--post-file", "-w", "--wait",
        }
    ),
    "aria2c": frozenset(
        {"-o", "--out", "-d", "--dir", "-x", "--max-connection-per-server", "-s", "--split"}
    ),
    "powershell": frozenset({"-outfile", "-method", "-headers", "-body", "-contenttype"}),
}

# Options whose value is another endpoint for the request
_ENDPOINT_OPTIONS = frozenset({"--url", "-x", "--proxy", "--preproxy", "-uri", "-proxy"})

# Options that reroute a request away from the host named in its URL
_REROUTE_OPTIONS = frozenset(
    {"--resolve", "--connect-to", "--dns-servers", "--doh-url", "--interface"}
)

_PROXY_ASSIGNMENT = re.compile(r"^[a-z_]*proxy=", re.IGNORECASE)
_NESTED_COMMAND = re.compile(r"[\s;|&`()]")
_OPERATOR_CHARS = frozenset("();<>|&")
_MAX_NESTING = 3


def extract_urls(command: str) -> tuple[str, ...]:
    """Return every URL-shaped substring of *command* in order of appearance."""
    return tuple(match.group(0).rstrip(".,") for match in _URL_PATTERN.finditer(command))


def extract_host(url: str) -> str | None:
    """Return the lower-cased host of *url*, or ``None`` if it cannot be parsed."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    return host.rstrip(".").lower() or None


def _endpoint_host(endpoint: str) -> str | None:
    if "://" not in endpoint:
        endpoint = "http://" + endpoint
    return extract_host(endpoint)


def is_trusted_host(host: str, trusted_domains: tuple[str, ...] = TRUSTED_DOMAINS) -> bool:
    """Check *host* against the allowlist (exact match or dot-boundary subdomain)."""
    host = host.lower()
    for domain in trusted_domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return True
    return False


def _shell_words(command: str) -> list[str]:
    lexer = shlex.shlex(command, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    # '#' inside a URL must not swallow the rest of the line
    lexer.commenters = ""
    return list(lexer)


def _takes_value(option: str, value_options: frozenset[str]) -> bool:
    """Whether *option* consumes the next word (handles clusters like ``-sSLo``)."""
    if option in value_options:
        return True
    if option.startswith("--") or len(option) < 2:
        return False
    for index, char in enumerate(option[1:], start=1):
        if f"-{char}" in value_options:
            return index == len(option) - 1
    return False


def extract_fetch_targets(
    command: str, _depth: int = 0
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Find the endpoints fetch tools in *command* will contact.

    Returns:
        ``(targets, reroutes)``: target arguments as written (scheme optional)
        and options that send the request somewhere other than its target.

    Raises:
        ValueError: If the command has unbalanced quotes.
    """
    targets: list[str] = []
    reroutes: list[str] = []
    family: str | None = None
    skip_next = False
    end_of_options = False
    last_target: str | None = None

    for word in _shell_words(command):
        if word and all(char in _OPERATOR_CHARS for char in word):
            if ("<" in word or ">" in word) and set(word) <= {"<", ">", "&"}:
                # Redirection: drop a preceding fd number, skip the file name
                if last_target is not None and last_target.isdigit():
                    targets.pop()
                skip_next = family is not None
            else:
                family = None
                skip_next = False
                end_of_options = False
            last_target = None
            continue

        if skip_next:
            skip_next = False
            continue

        if _depth < _MAX_NESTING and _NESTED_COMMAND.search(word):
            nested_targets, nested_reroutes = extract_fetch_targets(word, _depth + 1)
            targets.extend(nested_targets)
            reroutes.extend(nested_reroutes)

        if _PROXY_ASSIGNMENT.match(word):
            targets.append(word.partition("=")[2])
            continue

        name = word.strip("`").rsplit("/", 1)[-1].lower()
        if name in _FETCH_TOOLS:
            family = _FETCH_TOOLS[name]
            end_of_options = False
            last_target = None
            continue
        if family is None:
            continue

        if not end_of_options and word == "--":
            end_of_options = True
            continue

        if not end_of_options and len(word) > 1 and word.startswith("-"):
            option = word.lower() if family == "powershell" else word
            option_name, sep, _ = option.lower().partition("=")
            if option_name in _REROUTE_OPTIONS:
                reroutes.append(word)
                skip_next = not sep
            elif sep:
                if option_name in _ENDPOINT_OPTIONS:
                    targets.append(word.partition("=")[2])
            elif _takes_value(option, _VALUE_OPTIONS[family]):
                skip_next = True
            last_target = None
            continue

        targets.append(word)
        last_target = word

    return tuple(targets), tuple(reroutes)


def verify_domains(
    command: str,
    trusted_domains: tuple[str, ...] = TRUSTED_DOMAINS,
) -> DomainVerification:
    """Split the network endpoints in *command* into trusted and untrusted ones.

    ``all_trusted`` on the result is only ``True`` when at least one endpoint
    was found, every endpoint's host is on the allowlist and nothing reaches
    the network in a way the allowlist cannot vouch for.  Endpoints whose host
    cannot be parsed are untrusted.
    """
    if not command:
        return DomainVerification()

    unverified: list[str] = []
    try:
        targets, reroutes = extract_fetch_targets(command)
    except ValueError:
        targets, reroutes = (), ()
        unverified.append("command with unbalanced quotes")
    unverified.extend(reroutes)
    for rule in REMOTE_ACCESS_RULES:
        unverified.extend(match.group(0).strip() for match in rule.pattern.finditer(command))

    endpoints = tuple(dict.fromkeys((*extract_urls(command), *targets)))
    trusted: list[str] = []
    untrusted: list[str] = []
    for endpoint in endpoints:
        host = _endpoint_host(endpoint)
        if host is not None and is_trusted_host(host, trusted_domains):
            trusted.append(endpoint)
        else:
            untrusted.append(endpoint)

    return DomainVerification(
        extracted_urls=endpoints,
        trusted_urls=tuple(trusted),
        untrusted_urls=tuple(untrusted),
        unverified_endpoints=tuple(unverified),
    )
