"""Instant-block signature registry.

Signatures are checked in the order they appear in
:data:`INSTANT_BLOCK_SIGNATURES`; the first match wins.  The registry is a
tuple of frozen dataclasses and is never modified at runtime.
"""

from __future__ import annotations

import re

from vibesafu.guard.models import Severity, Signature

_NET_TOOLS = r"(?:curl|wget|nc|ncat|netcat|telnet|Invoke-WebRequest|Invoke-RestMethod)"
_SECRET_VAR = r"\$\{?[A-Z0-9_]*(?:KEY|SECRET|TOKEN|PASSWORD|PASSWD|CREDENTIALS?)[A-Z0-9_]*\}?"
_CREDENTIAL_FILE = (
    r"(?:\.ssh/|\.aws/credentials|\.netrc\b|\.git-credentials\b|\.env\b|id_rsa\b|id_ed25519\b)"
)
_SHELLS = r"(?:bash|sh|zsh|dash|ksh|python[0-9.]*|perl)"

# ---------------------------------------------------------------------------
# Reverse shells
# ---------------------------------------------------------------------------

_REVERSE_SHELLS: tuple[Signature, ...] = (
    Signature(
        name="reverse_shell_dev_tcp",
        pattern=re.compile(r"/dev/(?:tcp|udp)/[^\s/]+/\d+"),
        severity=Severity.CRITICAL,
        description="Opens a reverse shell through /dev/tcp",
        rationale="Hands interactive control of this machine to a remote host",
        legitimate_uses=("Port reachability checks in minimal containers without netcat",),
    ),
    Signature(
        name="reverse_shell_netcat",
        pattern=re.compile(
            r"\b(?:nc|ncat|netcat)(?:\.traditional|\.openbsd)?\s+(?:[^;&|\n]*\s)?"
            r"(?:-[a-zA-Z]*[ec]\b|--exec\b|--sh-exec\b)"
        ),
        severity=Severity.CRITICAL,
        description="Opens a reverse shell by binding a program to a netcat connection",
        rationale="netcat -e/-c exposes a shell to whoever is on the other end of the socket",
        legitimate_uses=("Debugging a local service on an isolated lab network",),
    ),
    Signature(
        name="reverse_shell_socat",
        pattern=re.compile(r"\bsocat\b[^\n]*\b(?:exec|system):", re.IGNORECASE),
        severity=Severity.CRITICAL,
        description="Opens a reverse shell by attaching a process to a socat stream",
        rationale="socat EXEC/SYSTEM addresses give a remote peer a shell on this machine",
        legitimate_uses=("Exposing a serial console or local process during lab debugging",),
    ),
    Signature(
        name="reverse_shell_script",
        pattern=re.compile(
            r"\b(?:python[0-9.]*|perl|ruby|php)\b[^\n]*\bsocket\b[^\n]*"
            r"(?:dup2|pty\.spawn|/bin/(?:ba|z)?sh\b|\bexec\b)"
        ),
        severity=Severity.CRITICAL,
        description="Opens a reverse shell from a one-line script wiring a socket to a shell",
        rationale="Socket plus dup2/pty.spawn is the classic interpreter reverse shell",
        legitimate_uses=("Writing networking exercises in a throwaway sandbox",),
    ),
    Signature(
        name="reverse_shell_fifo",
        pattern=re.compile(
            r"\bmkfifo\b[^\n]*\b(?:nc|ncat|netcat|telnet|openssl\s+s_client)\b"
        ),
        severity=Severity.CRITICAL,
        description="Opens a reverse shell relayed through a named pipe",
        rationale="A FIFO looped through a network client pipes a shell to a remote host",
        legitimate_uses=("Building a throwaway TCP relay for local testing",),
    ),
)

# ---------------------------------------------------------------------------
# Data exfiltration
# ---------------------------------------------------------------------------

_EXFILTRATION: tuple[Signature, ...] = (
    Signature(
        name="secret_env_exfiltration",
        pattern=re.compile(
            rf"\b{_NET_TOOLS}\b[^\n]*{_SECRET_VAR}|{_SECRET_VAR}[^\n]*\|\s*{_NET_TOOLS}\b"
        ),
        severity=Severity.CRITICAL,
        description="Sends a secret-looking environment variable over the network",
        rationale="Variables named *KEY, *SECRET, *TOKEN or *PASSWORD usually hold credentials",
        legitimate_uses=(
            "Authenticated API calls passing a token header",
            "Deploy scripts uploading with a CI-provided credential",
        ),
    ),
    Signature(
        name="environment_dump_exfiltration",
        pattern=re.compile(
            rf"\b(?:env|printenv)\s*\|[^\n]*\b{_NET_TOOLS}\b"
            rf"|\b{_NET_TOOLS}\b[^\n]*\$\(\s*(?:env|printenv)\s*\)"
        ),
        severity=Severity.CRITICAL,
        description="Sends the whole process environment over the network",
        rationale="The environment of a developer shell almost always contains credentials",
        legitimate_uses=("Shipping diagnostics to an internal support endpoint",),
    ),
    Signature(
        name="credential_file_exfiltration",
        pattern=re.compile(
            r"\b(?:curl|wget)\b[^\n]*"
            r"(?:-d|--data(?:-binary|-raw|-urlencode)?|-F|--form|-T|--upload-file|--post-file)"
            rf"[=\s]*[\"']?(?:\w+=)?@?[^\s\"']*{_CREDENTIAL_FILE}"
            rf"|\b(?:cat|base64|tar|gzip|zip|xxd)\b[^\n|]*{_CREDENTIAL_FILE}[^\n|]*\|\s*{_NET_TOOLS}\b"
        ),
        severity=Severity.CRITICAL,
        description="Uploads a credential file (SSH keys, cloud credentials, .env) to a remote host",
        rationale="Private keys and credential stores must never leave the machine",
        legitimate_uses=("Copying a public deploy key to a provisioning API",),
    ),
)

# ---------------------------------------------------------------------------
# Cryptocurrency mining
# ---------------------------------------------------------------------------

_CRYPTO_MINING: tuple[Signature, ...] = (
    Signature(
        name="crypto_miner_binary",
        pattern=re.compile(
            r"\b(?:xmrig|xmr-stak|minerd|cpuminer(?:-multi)?|cgminer|bfgminer|ethminer|nbminer"
            r"|t-rex|phoenixminer|lolminer|nanominer|teamredminer|gminer|srbminer)\b",
            re.IGNORECASE,
        ),
        severity=Severity.HIGH,
        description="Runs a known cryptocurrency miner",
        rationale="Miners hijack CPU/GPU resources and are a common payload of compromised setups",
        legitimate_uses=("Benchmarking hardware on a machine you own and pay for",),
    ),
    Signature(
        name="crypto_mining_pool",
        pattern=re.compile(r"\bstratum\+(?:tcp|ssl|tls)://", re.IGNORECASE),
        severity=Severity.HIGH,
        description="Connects to a cryptocurrency mining pool over stratum",
        rationale="stratum:// endpoints exist only to hand out mining work",
        legitimate_uses=("Testing a mining pool you operate",),
    ),
    Signature(
        name="crypto_miner_flags",
        pattern=re.compile(
            r"--(?:donate-level|randomx-mode|cpu-max-threads-hint)\b"
            r"|--algo[=\s](?:rx/0|cryptonight\S*|randomx|ethash|kawpow|autolykos2)\b",
            re.IGNORECASE,
        ),
        severity=Severity.MEDIUM,
        description="Passes cryptocurrency miner configuration flags",
        rationale="These flags are specific to mining software, even when the binary is renamed",
        legitimate_uses=("Benchmarking hardware with a renamed miner build",),
    ),
)

# ---------------------------------------------------------------------------
# Destructive operations
# ---------------------------------------------------------------------------

_DESTRUCTIVE: tuple[Signature, ...] = (
    Signature(
        name="root_deletion",
        pattern=re.compile(
            r"\brm\s+(?:-[a-zA-Z-]+\s+)*-[a-zA-Z]*[rR][a-zA-Z]*\s+(?:-[a-zA-Z-]+\s+)*"
            r"[\"']?(?:/\*?|~/?|\$HOME/?|\$\{HOME\}/?)[\"']?(?=\s|$|[;&|])"
        ),
        severity=Severity.CRITICAL,
        description="Recursively deletes the root filesystem or the home directory",
        rationale="Irrecoverable loss of the operating system or all user data",
        legitimate_uses=("Wiping a disposable container image during teardown",),
    ),
    Signature(
        name="fork_bomb",
        pattern=re.compile(r":\s*\(\s*\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:"),
        severity=Severity.HIGH,
        description="Starts a shell fork bomb",
        rationale="Exhausts the process table and forces a hard reboot",
        legitimate_uses=("Demonstrating process limits in a teaching VM",),
    ),
    Signature(
        name="disk_destruction",
        pattern=re.compile(
            r"\bdd\b[^\n]*\bof=/dev/(?:sd[a-z]|hd[a-z]|vd[a-z]|xvd[a-z]|nvme\d|mmcblk\d|disk\d)"
            r"|\bmkfs(?:\.\w+)?\s+[^\n]*/dev/"
            r"|>\s*/dev/(?:sd[a-z]|hd[a-z]|nvme\d|disk\d)\b"
        ),
        severity=Severity.CRITICAL,
        description="Overwrites or reformats a raw disk device",
        rationale="Destroys every partition and file on the target device",
        legitimate_uses=("Flashing an installer image onto a removable drive",),
    ),
    Signature(
        name="encoded_payload_execution",
        pattern=re.compile(
            rf"\bbase64\s+(?:-d|-D|--decode)\b[^\n]*\|\s*(?:sudo\s+)?{_SHELLS}\b"
            r"|\beval\b[^\n]*\bbase64\s+(?:-d|-D|--decode)\b"
        ),
        severity=Severity.HIGH,
        description="Decodes an obfuscated payload straight into a shell",
        rationale="Base64-wrapped commands hide what actually runs from review",
        legitimate_uses=("Bootstrapping a CI runner from an encoded inline script",),
    ),
)

INSTANT_BLOCK_SIGNATURES: tuple[Signature, ...] = (
    *_REVERSE_SHELLS,
    *_EXFILTRATION,
    *_CRYPTO_MINING,
    *_DESTRUCTIVE,
)
