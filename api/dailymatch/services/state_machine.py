def transition_session_state(current: str, action: str, day_key: str, today: str) -> str:
    if current == "expired":
        return "expired"

    if current == "active" and day_key < today:
        return "expired"

    if action == "expire":
        if current == "active":
            return "expired"
        return current

    return current
