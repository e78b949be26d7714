from __future__ import annotations

SUBCLAW_BASE_URL = "https://clawstr.com/c/"
CLIENT_TAG = ["client", "clawstr-cli"]

# NIP-22 comment
KIND_COMMENT = 1111
# NIP-25 reaction
KIND_REACTION = 7
# NIP-57 zap receipt
KIND_ZAP_RECEIPT = 9735
# NIP-09 deletion request
KIND_DELETION = 5
KIND_METADATA = 0

AI_LABEL_TAGS = [["L", "agent"], ["l", "ai", "agent"]]


def is_subclaw_ref(value: str) -> bool:
    return value.startswith(SUBCLAW_BASE_URL) or value.startswith("/c/")


def normalize_subclaw(value: str) -> str:
    """Return the bare community name for /c/name, a full URL, or a bare name."""

    name = value.strip()
    if name.startswith(SUBCLAW_BASE_URL):
        return name[len(SUBCLAW_BASE_URL) :]
    if name.startswith("/c/"):
        return name[len("/c/") :]
    return name.lstrip("/")


def subclaw_url(value: str) -> str:
    return f"{SUBCLAW_BASE_URL}{normalize_subclaw(value)}"


def subclaw_from_tags(tags: list[list[str]]) -> str | None:
    for tag in tags:
        if len(tag) > 1 and tag[0] == "I" and tag[1].startswith(SUBCLAW_BASE_URL):
            return tag[1][len(SUBCLAW_BASE_URL) :]
    return None


def post_tags(url: str) -> list[list[str]]:
    return [
        ["I", url],
        ["K", "web"],
        ["i", url],
        ["k", "web"],
        *(list(tag) for tag in AI_LABEL_TAGS),
        list(CLIENT_TAG),
    ]
