import re
from typing import Optional

_MOBILE_RE = re.compile(r"Mobile|Android|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.I)
_TABLET_RE = re.compile(r"Tablet|iPad", re.I)

# Chrome must come before Safari: Chrome UAs also contain "Safari".
BROWSERS = ("Chrome", "Firefox", "Safari", "Edge", "Opera")


def device_type(user_agent: Optional[str]) -> str:
    ua = user_agent or ""
    if _MOBILE_RE.search(ua):
        return "mobile"
    if _TABLET_RE.search(ua):
        return "tablet"
    return "desktop"


def browser(user_agent: Optional[str]) -> str:
    ua = user_agent or ""
    for name in BROWSERS:
        if name in ua:
            return name
    return "Unknown"


def profile(user_agent: Optional[str]) -> tuple[str, str]:
    return device_type(user_agent), browser(user_agent)
