from pathlib import Path
from unittest.mock import MagicMock

import pytest

from react_modifier.agents.llm_client import LLMResponse
from react_modifier.agents.snapshot_builder import SnapshotBuilder
from react_modifier.config import ModifierSettings
from react_modifier.models import TokenUsage
from react_modifier.session.context import SessionContext
from react_modifier.session.ledger import ModificationLedger
from react_modifier.session.token_tracker import TokenTracker


APP_TSX = """import { BrowserRouter, Routes, Route } from "react-router-dom";
import Header from "./components/Header";
import Home from "./pages/Home";

function App() {
  return (
    <BrowserRouter>
      <Header />
      <Routes>
        <Route path="/" element={<Home />} />
      </Routes>
    </BrowserRouter>
  );
}

export default App;
"""

HEADER_TSX = """import { Link } from "react-router-dom";

const Header = () => {
  return (
    <header className="bg-white shadow">
      <nav className="flex gap-4 p-4">
        <Link to="/">Home</Link>
        <Link to="/about">About</Link>
      </nav>
    </header>
  );
};

export default Header;
"""

HOME_TSX = """const Home = () => {
  return (
    <main className="container mx-auto">
      <h1 className="text-3xl font-bold">Welcome</h1>
      <p className="text-gray-600">Start building your app.</p>
    </main>
  );
};

export default Home;
"""

TAILWIND_CONFIG = """import type { Config } from "tailwindcss";

export default {
  content: ["./index.html", "./src/**/*.{ts,tsx}"],
  theme: {
    extend: {
      colors: {
        background: "#ffffff",
        primary: {
          DEFAULT: "#3b82f6",
          500: "#3b82f6",
          600: "#2563eb",
        },
      },
    },
  },
  plugins: [],
} satisfies Config;
"""


def write_project(root: Path, tailwind: bool = True) -> Path:
    """Lay out a small Vite-style React project under ``root``."""
    files = {
        "src/App.tsx": APP_TSX,
        "src/components/Header.tsx": HEADER_TSX,
        "src/pages/Home.tsx": HOME_TSX,
    }
    if tailwind:
        files["tailwind.config.ts"] = TAILWIND_CONFIG
    for relative_path, content in files.items():
        target = root / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


def make_llm(*texts: str) -> MagicMock:
    """Mock CompletionClient returning ``texts`` in order."""
    llm = MagicMock()
    llm.complete.side_effect = [
        LLMResponse(
            text=text,
            usage=TokenUsage(input_tokens=100, output_tokens=50),
            model="claude-sonnet-4-5-20250929",
            provider="anthropic",
        )
        for text in texts
    ]
    return llm


def make_session(root: Path, llm=None, **settings) -> SessionContext:
    builder = SnapshotBuilder()
    return SessionContext(
        session_id="test-session",
        base_path=str(root.resolve()),
        settings=ModifierSettings(**settings),
        snapshot=builder.build(str(root)),
        llm=llm,
        ledger=ModificationLedger("test-session"),
        token_tracker=TokenTracker(),
        builder=builder,
    )


@pytest.fixture
def react_project(tmp_path):
    return write_project(tmp_path / "app")


@pytest.fixture
def session(react_project):
    """Session over the fixture project with no LLM configured."""
    return make_session(react_project)
