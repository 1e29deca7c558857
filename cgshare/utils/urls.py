# cgshare/utils/urls.py
# Helpers for game server URLs as users submit them (host[:port][/path], scheme optional)

_SCHEMES = ("http://", "https://", "ws://", "wss://")


def trim_url(url: str) -> str:
    """Strip whitespace, a leading scheme and trailing slashes.

    >>> trim_url("https://games.example.com/")
    'games.example.com'
    """
    url = url.strip()
    for scheme in _SCHEMES:
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    return url.rstrip("/")


def base_url(protocol: str, tls: bool, trimmed_url: str) -> str:
    if tls:
        return f"{protocol}s://{trimmed_url}"
    return f"{protocol}://{trimmed_url}"


def host_of(trimmed_url: str) -> str:
    """Return the host part of a trimmed URL, without port or path."""
    host = trimmed_url.split("/", 1)[0]
    if host.startswith("["):
        # [v6]:port
        return host[1:].split("]", 1)[0]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host
