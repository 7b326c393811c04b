"""
User-agent classification.

The ``user-agents`` parser recognizes regular browsers, operating systems
and phone/tablet hardware. Redirect traffic also comes from link-preview
bots, command line tools, mail clients, media players and HTTP libraries,
so the classifier checks a list of detector sets first and falls back to
the parser. New detector sets can be passed in without touching this module.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from user_agents import parse as parse_user_agent

UNKNOWN_FAMILY = "Other"


@dataclass(frozen=True)
class UserAgentInfo:
    os: Optional[str] = None
    browser: Optional[str] = None
    browser_type: Optional[str] = None
    device: Optional[str] = None
    device_type: Optional[str] = None


@dataclass(frozen=True)
class DetectorSet:
    """
    A named group of regex detectors that share one type.

    Each pattern is paired with a name. When the name is None the first
    regex group is used instead.
    """
    type: str
    patterns: Sequence[Tuple[str, Optional[str]]]

    def __post_init__(self):
        compiled = tuple((re.compile(pattern, re.IGNORECASE), name) for pattern, name in self.patterns)
        object.__setattr__(self, "_compiled", compiled)

    def match(self, user_agent: str) -> Optional[str]:
        for regex, name in self._compiled:
            found = regex.search(user_agent)
            if found:
                return name or found.group(1)
        return None


APPS = DetectorSet("app", [
    (r"\bInstagram\b", "Instagram"),
    (r"\bFBAN/|\bFBAV/", "Facebook"),
    (r"\bMicroMessenger/", "WeChat"),
    (r"\bLine/", "Line"),
    (r"\bTwitter(?:Android)?\b", "Twitter"),
    (r"\bSlack/", "Slack"),
    (r"\bDiscord/", "Discord"),
    (r"\bTelegram(?:Desktop)?\b", "Telegram"),
    (r"\bElectron/", "Electron"),
])

BOTS = DetectorSet("bot", [
    (r"\b(Googlebot(?:-Image|-News|-Video)?)\b", None),
    (r"\b(bingbot|YandexBot|Baiduspider|DuckDuckBot|Applebot|PetalBot|AhrefsBot|SemrushBot)\b", None),
    (r"\b(GPTBot|ChatGPT-User|ClaudeBot|PerplexityBot|CCBot)\b", None),
    (r"\b(facebookexternalhit|Facebot|Twitterbot|LinkedInBot|Pinterestbot)\b", None),
    (r"\b(Slackbot(?:-LinkExpanding)?|Discordbot|TelegramBot|WhatsApp|SkypeUriPreview)\b", None),
    (r"\b(UptimeRobot|Pingdom)\b", None),
])

CLIS = DetectorSet("cli", [
    (r"^(curl)/", None),
    (r"^(Wget)/", None),
    (r"^(HTTPie)/", None),
    (r"\b(PowerShell)/", None),
    (r"^(aria2)/", None),
])

EMAILS = DetectorSet("email", [
    (r"\b(Thunderbird)/", None),
    (r"\bMicrosoft Outlook\b|\bMSOffice\b", "Outlook"),
    (r"\b(Postbox|Airmail|Spark)/", None),
    (r"\bYahooMailProxy\b", "Yahoo Mail"),
    (r"\bGoogleImageProxy\b", "Gmail"),
])

MEDIA_PLAYERS = DetectorSet("mediaplayer", [
    (r"\b(VLC)/", None),
    (r"\blibmpv\b|^mpv\b", "mpv"),
    (r"\b(iTunes|Winamp|foobar2000|MPlayer|Kodi)/", None),
    (r"\bAppleCoreMedia/", "AppleCoreMedia"),
])

MODULES = DetectorSet("library", [
    (r"^python-(requests|urllib3|httpx)/", None),
    (r"^Python-urllib/", "urllib"),
    (r"\b(aiohttp)/", None),
    (r"^(axios)/", None),
    (r"^(node-fetch|undici)\b", None),
    (r"^Go-http-client/", "Go http client"),
    (r"^(okhttp)/", None),
    (r"^Apache-HttpClient/", "Apache HttpClient"),
    (r"^Java/", "Java"),
    (r"^(libwww-perl)/", None),
    (r"^(GuzzleHttp)/", None),
])

# Device sets return the model name; the set type becomes the device type
EXTRA_DEVICES = [
    DetectorSet("smarttv", [
        (r"\b(?:SMART-TV|SmartTV)\b.*\b(Samsung|LG|Sony|Philips)\b", None),
        (r"\bTizen\b.*\bTV\b", "Samsung Smart TV"),
        (r"\bWeb0S\b|\bwebOS\.TV\b", "LG webOS TV"),
        (r"\b((?-i:AFT)\w+)\b", None),
        (r"\bAppleTV\d", "Apple TV"),
        (r"\bCrKey/", "Chromecast"),
        (r"\bRoku/", "Roku"),
    ]),
    DetectorSet("console", [
        (r"\b(PlayStation (?:\d|Vita|Portable))\b", None),
        (r"\b(Xbox(?: One| Series [SX])?)\b", None),
        (r"\b(Nintendo (?:Switch|WiiU|Wii|3DS))\b", None),
    ]),
    DetectorSet("wearable", [
        (r"\bWatch OS\b|\bwatchOS\b", "Apple Watch"),
        (r"\bWear OS\b", "Wear OS"),
    ]),
    DetectorSet("embedded", [
        (r"\bKindle/", "Kindle"),
        (r"\bTesla/", "Tesla"),
    ]),
]

DEFAULT_BROWSER_DETECTORS = [APPS, BOTS, CLIS, EMAILS, MEDIA_PLAYERS, MODULES]


def _known(family: Optional[str]) -> Optional[str]:
    if not family or family == UNKNOWN_FAMILY:
        return None
    return family


class UserAgentClassifier:
    """
    Classify a User-Agent string into OS, browser and device fields.

    Args:
        browser_detectors: detector sets tried (in order) for browser name/type
        device_detectors: detector sets tried (in order) for device model/type
    """

    def __init__(
        self,
        browser_detectors: List[DetectorSet] = None,
        device_detectors: List[DetectorSet] = None
    ):
        self.browser_detectors = list(DEFAULT_BROWSER_DETECTORS if browser_detectors is None else browser_detectors)
        self.device_detectors = list(EXTRA_DEVICES if device_detectors is None else device_detectors)

    def classify(self, user_agent: str) -> UserAgentInfo:
        if not user_agent:
            return UserAgentInfo()

        parsed = parse_user_agent(user_agent)
        browser, browser_type = self._browser(user_agent, parsed)
        device, device_type = self._device(user_agent, parsed)

        return UserAgentInfo(
            os=_known(parsed.os.family),
            browser=browser,
            browser_type=browser_type,
            device=device,
            device_type=device_type,
        )

    def _browser(self, user_agent: str, parsed) -> Tuple[Optional[str], Optional[str]]:
        for detector in self.browser_detectors:
            name = detector.match(user_agent)
            if name:
                return name, detector.type

        family = _known(parsed.browser.family)
        if family is None:
            return None, None
        return family, "bot" if parsed.is_bot else "browser"

    def _device(self, user_agent: str, parsed) -> Tuple[Optional[str], Optional[str]]:
        for detector in self.device_detectors:
            model = detector.match(user_agent)
            if model:
                return model, detector.type

        model = _known(parsed.device.model)
        if parsed.is_tablet:
            return model, "tablet"
        if parsed.is_mobile:
            return model, "mobile"
        return model, None
