#!/usr/bin/env python3
"""Emit deterministic SQL for the course and access-token tables."""

from __future__ import annotations

import argparse


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def _quote_ident(value: str) -> str:
    escaped = value.replace('"', '""')
    return f'"{escaped}"'


def render_sql(*, schema: str, with_tokens: bool, seed_client: str | None = None) -> str:
    schema_ident = _quote_ident(schema)
    statements = [
        f"create schema if not exists {schema_ident};",
        f"""create table if not exists {schema_ident}.courses (
  id uuid primary key,
  user_id uuid not null,
  role text,
  title text not null check (title <> ''),
  content text not null check (content <> ''),
  created_at timestamptz not null,
  created_by uuid not null,
  updated_at timestamptz,
  updated_by uuid,
  deleted_at timestamptz,
  deleted_by uuid
);""",
        f"create index if not exists courses_role_idx on {schema_ident}.courses (role);",
    ]

    if with_tokens:
        statements.append(
            f"""create table if not exists {schema_ident}.oauth_access_tokens (
  access_token text primary key,
  token_type text not null default 'Bearer',
  client_id text not null,
  user_id uuid,
  expires_at timestamptz not null,
  revoked_at timestamptz,
  created_at timestamptz not null default now()
);"""
        )
        if seed_client:
            statements.append(
                f"insert into {schema_ident}.oauth_access_tokens (access_token, client_id, expires_at)\n"
                f"values (md5(random()::text), {_quote_sql(seed_client)}, now() + interval '1 hour');"
            )

    body = "\n\n".join(statements)
    return f"""-- coursehub schema bootstrap SQL
-- Run this against the target database (psql -f, or any privileged Postgres session).

{body}
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL that creates the coursehub tables.")
    parser.add_argument("--schema", default="public", help="Target Postgres schema")
    parser.add_argument(
        "--without-tokens",
        action="store_true",
        help="Skip the oauth_access_tokens table used by local credential checks",
    )
    parser.add_argument("--seed-client", help="Insert one short-lived client-credential token for this client id")
    args = parser.parse_args()

    print(
        render_sql(
            schema=args.schema,
            with_tokens=not args.without_tokens,
            seed_client=args.seed_client,
        )
    )


if __name__ == "__main__":
    main()
