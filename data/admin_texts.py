"""
Тексты для административных уведомлений и описания нарушений
"""

VIOLATION_DESCRIPTIONS = {
    "link": "Ссылка на сторонний ресурс",
    "forward": "Пересланное сообщение",
    "manual": "Предупреждение от администратора"
}

ADMIN_MUTE_NOTIFICATION = """<b>Мут по порогу нарушений!</b>
<b>Чат</b>: {chat_id}
<b>Пользователь</b>: {user_name}
<b>ID</b>: {user_id}
<b>Последнее нарушение</b>: {violation_desc} ({violation_type})
<b>Длительность мута</b>: {minutes} мин.
<b>Текст сообщения</b>:<blockquote>{msg_text}</blockquote>"""

BUTTON_UNMUTE = "🔊 Снять мут"
BUTTON_RESET = "🔄 Сбросить счётчик нарушений"
BUTTON_DONE = "✅ Выполнено"

CALLBACK_UNMUTE_DONE = "Мут снят!"
CALLBACK_RESET_DONE = "Счётчик нарушений сброшен!"
CALLBACK_NOT_ADMIN = "Недостаточно прав."
