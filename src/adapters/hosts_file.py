"""Alias locales en el fichero de hosts.

Regla de idempotencia: se borra toda línea que contenga el dominio y se
añade exactamente una. Limitación conocida: una línea manual que contenga el
dominio como subcadena también se elimina.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


def hosts_line(domain: str, labels: Sequence[str], address: str = "127.0.0.1") -> str:
    names = [f"{label}.{domain}" for label in labels]
    names.append(domain)
    return f"{address}  {' '.join(names)}"


def rewrite_hosts(
    text: str,
    domain: str,
    labels: Sequence[str],
    address: str = "127.0.0.1",
) -> str:
    """Devuelve el contenido nuevo sin tocar el resto de líneas ni su orden."""

    kept = [line for line in text.splitlines() if domain not in line]
    kept.append(hosts_line(domain, labels, address))
    return "\n".join(kept) + "\n"


def register_host_aliases(
    path: Path,
    domain: str,
    labels: Sequence[str],
    address: str = "127.0.0.1",
) -> str:
    """Aplica `rewrite_hosts` sobre `path` y devuelve la línea añadida."""

    current = path.read_text(encoding="utf-8") if path.exists() else ""
    path.write_text(rewrite_hosts(current, domain, labels, address), encoding="utf-8")
    return hosts_line(domain, labels, address)
