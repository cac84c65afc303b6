"""Trusted domain registry.

An entry trusts the host itself and every subdomain of it on a dot boundary:
``github.com`` trusts ``api.github.com`` but not ``notgithub.com``.
"""

from __future__ import annotations

TRUSTED_DOMAINS: tuple[str, ...] = (
    # Code hosting
    "github.com",
    "githubusercontent.com",
    "gitlab.com",
    "bitbucket.org",
    # Runtimes and toolchain installers
    "bun.sh",
    "deno.land",
    "deno.com",
    "nodejs.org",
    "nvm.sh",
    "python.org",
    "astral.sh",
    "python-poetry.org",
    "rustup.rs",
    "rust-lang.org",
    "go.dev",
    "golang.org",
    "sdkman.io",
    "brew.sh",
    "docker.com",
    "pnpm.io",
    "yarnpkg.com",
    "volta.sh",
    "fnm.vercel.app",
    "claude.ai",
    "anthropic.com",
    # Package registries
    "npmjs.org",
    "npmjs.com",
    "pypi.org",
    "pythonhosted.org",
    "crates.io",
    "rubygems.org",
    "maven.org",
    "packagist.org",
    # CDNs
    "jsdelivr.net",
    "unpkg.com",
    "cdnjs.cloudflare.com",
)
