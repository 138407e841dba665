"""Shared pytest fixtures for all tests."""
import json

import pytest

from docdrift.extraction.models import Claim, PathValue, detect_format, testability_for
from docdrift.extraction.preprocessing import preprocess
from docdrift.index import InMemoryIndex


@pytest.fixture
def make_doc():
    """Preprocess a document string (markdown unless a file name says otherwise)."""
    def _make(content: str, doc_file: str = "README.md"):
        return preprocess(content, detect_format(doc_file))
    return _make


@pytest.fixture
def make_claim():
    """Build a pending Claim around an extracted value."""
    def _make(
        claim_type: str,
        value,
        claim_text: str = "documented claim",
        source_file: str = "README.md",
        line_number: int = 1,
        keywords=None,
    ) -> Claim:
        return Claim(
            repo_id="test",
            source_file=source_file,
            line_number=line_number,
            claim_text=claim_text,
            claim_type=claim_type,
            testability=testability_for(claim_type),
            extracted_value=value,
            keywords=list(keywords or []),
        )
    return _make


@pytest.fixture
def path_claim(make_claim):
    def _make(path: str, anchor=None, source_file: str = "README.md", claim_text=None) -> Claim:
        return make_claim(
            "path_reference",
            PathValue(path=path, anchor=anchor),
            claim_text=claim_text or f"See `{path}` for details.",
            source_file=source_file,
        )
    return _make


PACKAGE_JSON = {
    "name": "sample-app",
    "version": "2.1.0",
    "license": "MIT",
    "engines": {"node": ">=18"},
    "scripts": {
        "build": "tsc -p .",
        "test": "vitest run",
        "lint": "eslint src",
        "dev": "vite",
    },
    "dependencies": {
        "react": "^18.0.0",
        "express": "^4.18.0",
    },
    "devDependencies": {
        "typescript": "~5.3.0",
    },
}

PACKAGE_LOCK = {
    "name": "sample-app",
    "lockfileVersion": 3,
    "packages": {
        "": {"name": "sample-app", "dependencies": {"react": "^18.0.0", "express": "^4.18.0"}},
        "node_modules/react": {"version": "18.3.0"},
        "node_modules/express": {"version": "4.18.2"},
        "node_modules/typescript": {"version": "5.3.3"},
    },
}

SERVER_TS = """import express from 'express';
import { verifyToken } from './auth/handler';

const app = express();

app.get('/api/users', listUsers);
app.post('/api/users/:id/roles', assignRole);

export function listUsers(req, res) {
  res.json([]);
}

export function assignRole(req, res) {
  res.sendStatus(204);
}
"""

HANDLER_TS = """export function verifyToken(token: string): boolean {
  return token.length > 0;
}

export class AuthHandler {
  handle() {
    return verifyToken('x');
  }
}
"""

GUIDE_MD = """# Guide

## Getting Started

Some text.

## Configuration Options

More text.
"""


@pytest.fixture
def sample_files() -> dict[str, str]:
    """A small TypeScript service with manifests, a lockfile and docs."""
    return {
        "package.json": json.dumps(PACKAGE_JSON),
        "package-lock.json": json.dumps(PACKAGE_LOCK),
        "tsconfig.json": '{\n  // compiler settings\n  "compilerOptions": {"strict": true}\n}\n',
        "src/server.ts": SERVER_TS,
        "src/auth/handler.ts": HANDLER_TS,
        "docs/guide.md": GUIDE_MD,
        "docs/setup.md": "# Setup\n",
        "README.md": "# Sample\n\n## Install\n",
        ".env.example": "DATABASE_URL=postgres://localhost/app\nexport API_TOKEN=changeme\n",
        ".nvmrc": "v18.17.0\n",
    }


@pytest.fixture
def sample_index(sample_files) -> InMemoryIndex:
    return InMemoryIndex.from_files(sample_files)
