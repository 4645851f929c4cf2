"""
Классификация входящих сообщений: ссылки и пересылки.

Проверка ссылок сначала, пересылка - только если ссылок-нарушений нет.
"""
import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

from db.models import ChatPolicy, InboundMessage, ViolationKind

# Домены верхнего уровня, на которые реагирует поиск "голых" адресов вида host.tld
LINK_TLDS = (
    "com", "net", "org", "info", "biz", "io", "co", "me", "ru", "su", "ua", "by", "kz", "uz",
    "de", "uk", "us", "eu", "in", "cn", "jp", "tv", "cc", "ws", "to", "gg", "ly", "ai", "app",
    "dev", "xyz", "top", "site", "online", "shop", "store", "link", "club", "pro", "live",
    "fun", "space", "website", "tech", "icu", "vip", "click", "tk", "ml", "ga", "cf", "gq",
)

SCHEME_URL_RE = re.compile(r"\b(?:https?|ftp)://[^\s<>\"']+", re.IGNORECASE)
WWW_URL_RE = re.compile(r"(?<![\w.-])www\.[^\s<>\"']+", re.IGNORECASE)
BARE_HOST_RE = re.compile(
    r"(?<![\w@.-])"
    r"(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+"
    r"(?:" + "|".join(LINK_TLDS) + r")\b"
    r"(?:[/:?#][^\s<>\"']*)?",
    re.IGNORECASE,
)
INVITE_RE = re.compile(
    r"(?<![\w.-])(?:(?:t|telegram)\.me|telegram\.dog)/(?:joinchat/|\+)?[\w-]+"
    r"|(?<![\w.-])discord(?:\.gg|(?:app)?\.com/invite)/[\w-]+",
    re.IGNORECASE,
)

TRAILING_PUNCTUATION = ".,;:!?)]}'\"»"


def find_link_candidates(text: str, entity_urls: Iterable[str] = ()) -> List[str]:
    """Все различные подстроки, похожие на ссылку, в порядке появления"""
    found = []
    spans = []
    for pattern in (SCHEME_URL_RE, WWW_URL_RE, INVITE_RE, BARE_HOST_RE):
        for match in pattern.finditer(text):
            # Хост внутри уже найденной ссылки отдельно не считается
            if any(start <= match.start() < end for start, end in spans):
                continue
            spans.append(match.span())
            found.append((match.start(), match.group(0).rstrip(TRAILING_PUNCTUATION)))

    candidates = []
    seen = set()
    for _, candidate in sorted(found):
        if candidate and candidate not in seen:
            seen.add(candidate)
            candidates.append(candidate)
    for url in entity_urls:
        if url and url not in seen:
            seen.add(url)
            candidates.append(url)
    return candidates


def extract_hostname(candidate: str) -> Optional[str]:
    url = candidate if "://" in candidate else f"http://{candidate}"
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname.rstrip(".").lower() or None


def is_whitelisted(hostname: str, whitelist: Iterable[str]) -> bool:
    """Хост совпадает с доменом из списка или является его поддоменом"""
    hostname = hostname.lower()
    for domain in whitelist:
        domain = domain.lower()
        if hostname == domain or hostname.endswith("." + domain):
            return True
    return False


def has_forbidden_link(message: InboundMessage, whitelist: Iterable[str]) -> bool:
    whitelist = list(whitelist)
    for candidate in find_link_candidates(message.text, message.entity_urls):
        hostname = extract_hostname(candidate)
        if hostname is None or not is_whitelisted(hostname, whitelist):
            return True
    return False


def evaluate(message: InboundMessage, policy: ChatPolicy) -> Optional[ViolationKind]:
    """Возвращает вид нарушения или None, если сообщение допустимо"""
    if message.sender_id is None:
        return None
    if policy.link_filter_enabled and has_forbidden_link(message, policy.whitelisted_domains):
        return ViolationKind.LINK
    if policy.forward_filter_enabled and message.is_forwarded:
        return ViolationKind.FORWARD
    return None
