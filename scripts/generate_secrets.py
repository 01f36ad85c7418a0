#!/usr/bin/env python3
"""
Script para gerar o secret de sessão do Bugflow.
Use antes de fazer deploy em produção.
"""

import secrets


def generate_session_secret() -> str:
    """Gera um secret seguro para sessões."""
    return secrets.token_urlsafe(32)


def main():
    print("=" * 60)
    print("BUGFLOW - Gerador de Secrets")
    print("=" * 60)
    print()

    session_secret = generate_session_secret()

    print("Copie esta variável para seu .env:\n")

    print("# Session Secret (para cookies de sessão)")
    print(f"BUGFLOW_SESSION_SECRET={session_secret}")
    print()

    print("=" * 60)
    print("IMPORTANTE:")
    print("- Guarde este secret em local seguro")
    print("- NÃO commite no Git")
    print("- Use secrets diferentes para dev/staging/prod")
    print("=" * 60)


if __name__ == "__main__":
    main()
