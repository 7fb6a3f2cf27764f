import hashlib


def sha256_text(text: str) -> str:
    # Normalize line endings to \n before hashing
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
