SYSTEM_PROMPT = (
    "Quando o usuário perguntar sobre hora ou data atual, chame a função "
    "getCurrentTime para fornecer a resposta correta."
)


def compose_user_message(message: str) -> str:
    # The instruction travels inside the user text, not as a system-role turn.
    return f"{SYSTEM_PROMPT}\n\n{message}"
