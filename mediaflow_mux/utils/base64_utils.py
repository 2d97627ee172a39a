import base64


def encode_data_url(payload: bytes, media_type: str = "video/mp4") -> str:
    """
    Encode a binary payload as a self-contained base64 data URL.

    Args:
        payload (bytes): The bytes to embed.
        media_type (str): The MIME type announced in the URL.

    Returns:
        str: A ``data:<media_type>;base64,...`` URL.
    """
    return f"data:{media_type};base64,{base64.b64encode(payload).decode('ascii')}"


def decode_data_url(data_url: str) -> bytes:
    """
    Decode a base64 data URL produced by :func:`encode_data_url`.

    Raises:
        ValueError: If the string is not a base64 data URL.
    """
    header, sep, encoded = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Not a base64 data URL")
    return base64.b64decode(encoded)
