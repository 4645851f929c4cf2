"""
Тексты сообщений бота в группах
"""

TEXTS = {
    "link_warning": "⚠️ {name}, ссылки в этом чате запрещены.\nПредупреждение <b>{count}/{threshold}</b>.",
    "forward_warning": "⚠️ {name}, пересылать сообщения в этот чат запрещено.\nПредупреждение <b>{count}/{threshold}</b>.",
    "manual_warning": "⚠️ {name}, вы получили предупреждение от администратора.\nПредупреждение <b>{count}/{threshold}</b>.",
    "mute_applied": "🤐 {name} получил мут на {minutes} мин. за {threshold} нарушений.\nМут истекает {datetime}.",
    "muted_by_admin": "🤐 {name} получил мут на {minutes} мин.",
    "unmuted": "🔊 С пользователя {name} снят мут.",
    "forgiven": "✅ С пользователя {name} снято одно предупреждение ({count}/{threshold}).",
    "delete_scheduled": "🗑 Сообщение будет удалено через {delay}.",
    "reply_required": "Ответьте этой командой на сообщение.",
    "whitelist": "<b>Белый список</b>:\n{domains}",
    "whitelist_empty": "Белый список пуст.",
    "whitelist_usage": "Использование: /whitelist [add|remove домен]",
    "toggle_usage": "Использование: /{command} on|off",
    "threshold_usage": "Использование: /threshold число (не меньше 1)",
    "mutetime_usage": "Использование: /mutetime 30m",
    "settings": (
        "<b>Настройки чата</b>\n"
        "Фильтр ссылок: {links}\n"
        "Фильтр пересылок: {forwards}\n"
        "Нарушений до мута: {threshold}\n"
        "Длительность мута: {minutes} мин.\n"
        "Доменов в белом списке: {domains}"
    ),
}

VIOLATION_WARNING_TEXTS = {
    "link": "link_warning",
    "forward": "forward_warning",
    "manual": "manual_warning",
}


def on_off(value: bool) -> str:
    return "включён" if value else "выключен"


def format_delay(seconds: int) -> str:
    """10 -> '10 с', 90 -> '1 мин. 30 с'"""
    parts = []
    for size, label in ((86400, "д."), (3600, "ч."), (60, "мин."), (1, "с")):
        if seconds >= size:
            value, seconds = divmod(seconds, size)
            parts.append(f"{value} {label}")
    return " ".join(parts) or "0 с"
