"""User-Agent strings sent with every crawl request."""

from typing import List


# Shop sites commonly block default HTTP client signatures, so every request
# goes out with a realistic desktop browser string.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0"
)

# Alternatives for deployments that set USER_AGENT explicitly
USER_AGENTS: List[str] = [
    DEFAULT_USER_AGENT,
    # Firefox on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    # Safari on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.1 Safari/605.1.15",
]


def get_user_agent_by_browser(browser_name: str) -> str:
    """Get a desktop user-agent string for a specific browser.

    Args:
        browser_name: Browser name ('firefox', 'chrome', 'safari')

    Returns:
        Matching user-agent string, or DEFAULT_USER_AGENT if not recognized
    """
    browser_name = browser_name.lower()
    if browser_name == "chrome":
        matches = [ua for ua in USER_AGENTS if "Chrome/" in ua]
    elif browser_name == "safari":
        matches = [ua for ua in USER_AGENTS if "Safari/" in ua and "Chrome/" not in ua]
    else:
        matches = [ua for ua in USER_AGENTS if "Firefox/" in ua]
    return matches[0] if matches else DEFAULT_USER_AGENT


def resolve_user_agent(value: str) -> str:
    """Expand a browser alias ("firefox", "chrome", "safari") to a full string.

    Anything else is taken as a literal user-agent and returned unchanged.
    """
    if value.strip().lower() in ("firefox", "chrome", "safari"):
        return get_user_agent_by_browser(value.strip())
    return value
