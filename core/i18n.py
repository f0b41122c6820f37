"""
gettext 翻译：消息目录位于 <project>/locales/<lang>/LC_MESSAGES/messages.mo

缺少目录或条目时 `t()` 原样返回 msgid，因此用户可见文本以英文原文
作为 msgid，管理接口消息使用点分键。
"""
from __future__ import annotations

import gettext
from contextvars import ContextVar
from pathlib import Path

from core.logging_config import get_logger

_current_locale: ContextVar[str] = ContextVar("current_locale", default="en")
_translators: dict[str, gettext.NullTranslations] = {}
_logger = get_logger(__name__)

LOCALE_DIR = Path(__file__).resolve().parent.parent / "locales"


def get_locale() -> str:
    """Get current request locale (default 'en')."""
    return _current_locale.get()


def _get_translator(locale: str) -> gettext.NullTranslations:
    tr = _translators.get(locale)
    if tr is None:
        tr = gettext.translation(
            domain="messages",
            localedir=str(LOCALE_DIR),
            languages=[locale],
            fallback=True,
        )
        _translators[locale] = tr
    return tr


def t(msgid: str, **params) -> str:
    """Translate msgid using current locale and format with params.

    If translation file is missing or key not found, returns msgid itself.
    """
    text = _get_translator(get_locale()).gettext(msgid)
    if not params:
        return text
    try:
        return text.format(**params)
    except (KeyError, IndexError, ValueError) as exc:
        _logger.warning("i18n_format_failed", msgid=msgid, params=list(params.keys()), error=str(exc))
        return text
