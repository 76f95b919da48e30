# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pageverdict  # noqa: F401
except ImportError:
    raise ImportError("pageverdict is not installed. Run: pip install -e '.[dev]'") from None

from unittest.mock import AsyncMock, MagicMock

import pytest

LOGIN_HTML = """
<html>
<head><title>Sign in - Acme</title></head>
<body>
  <header class="site-header"><img src="/static/logo.svg" alt="Acme logo"></header>
  <main>
    <h1>Sign in</h1>
    <form action="/session" method="post">
      <label for="email">Email</label>
      <input type="email" id="email" name="email">
      <label for="pw">Password</label>
      <input type="password" id="pw" name="password">
      <input type="checkbox" name="remember_me"> <label>Remember me</label>
      <button type="submit" id="login-btn">Log in</button>
    </form>
    <a href="/signup">Sign up</a>
  </main>
</body>
</html>
"""

LISTING_HTML = """
<html>
<head><title>Products</title></head>
<body>
  <nav><a href="/">Home</a></nav>
  <div class="filters"><select name="sort-by"><option>Price</option></select></div>
  <ul class="product-grid">
    <li>Alpha</li><li>Beta</li><li>Gamma</li><li>Delta</li>
    <li>Epsilon</li><li>Zeta</li><li>Eta</li>
  </ul>
  <div class="pagination"><a href="?page=2">Next</a></div>
</body>
</html>
"""

DASHBOARD_HTML = """
<html>
<head><title>Dashboard</title></head>
<body>
  <aside class="sidebar"><div class="widget">Shortcuts</div></aside>
  <div class="user-menu"><span class="username">alice</span><button>Logout</button></div>
  <p>Welcome, Alice</p>
  <canvas class="chart"></canvas>
  <div class="stat-card">Revenue 1,204</div>
</body>
</html>
"""

LOADING_HTML = """
<html><body class="loading">
  <div class="skeleton-row"></div><div class="skeleton-row"></div>
</body></html>
"""


@pytest.fixture
def login_html() -> str:
    return LOGIN_HTML


@pytest.fixture
def listing_html() -> str:
    return LISTING_HTML


@pytest.fixture
def dashboard_html() -> str:
    return DASHBOARD_HTML


@pytest.fixture
def loading_html() -> str:
    return LOADING_HTML


@pytest.fixture
def mock_page():
    """Playwright Page double with async content/evaluate/title."""
    page = MagicMock()
    page.url = "https://example.com/login"
    page.content = AsyncMock(return_value=LOGIN_HTML)
    page.evaluate = AsyncMock(side_effect=["Sign in Email Password Log in", "session_id=abc"])
    page.title = AsyncMock(return_value="Sign in - Acme")
    return page
