# Explanation:
# Command line entry point for chores around the e2e harness:
#   python main.py check-env   -> validate the configured environment
#   python main.py cleanup     -> delete the harness' Kafka instance and
#                                 service account left behind by aborted runs

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from config.config import Settings, settings
from integration.kafka_mgmt_api import KafkaMgmtApi
from integration.mgmt_utils import (
    delete_kafka_by_name_if_exists,
    delete_service_account_by_name_if_exists,
)
from integration.security_mgmt_api import SecurityMgmtApi
from integration.sso_oauth import KeycloakLoginSession, KeycloakOAuth
from utils.api_errors import ApiError, WaitTimeoutError
from utils.env_validation import validate_environment
from utils.logging_setup import configure_logging, reset_current_test, set_current_test

logger = logging.getLogger(__name__)


async def cleanup(cfg: Settings, *, wait: bool = False) -> bool:
    """Remove the named Kafka instance and service account. Returns ``True`` if
    anything was deleted."""

    policy = cfg.retry_policy()
    oauth = KeycloakOAuth(
        cfg.sso_keycloak_uri,
        cfg.sso_realm,
        cfg.sso_client_id,
        redirect_uri=cfg.sso_redirect_uri,
        policy=policy,
        timeout=cfg.request_timeout,
    )
    session = KeycloakLoginSession(
        oauth, cfg.sso_username or "", cfg.sso_password or "", leeway=cfg.token_leeway_seconds
    )
    kafka_api = KafkaMgmtApi(
        cfg.service_api_uri, token_source=session, policy=policy, timeout=cfg.request_timeout
    )
    security_api = SecurityMgmtApi(
        cfg.service_api_uri, token_source=session, policy=policy, timeout=cfg.request_timeout
    )
    try:
        await session.login()
        kafka_deleted = await delete_kafka_by_name_if_exists(
            kafka_api, cfg.kafka_instance_name, wait=wait, timeout=cfg.kafka_delete_timeout
        )
        account_deleted = await delete_service_account_by_name_if_exists(
            security_api, cfg.service_account_name
        )
    finally:
        await kafka_api.aclose()
        await security_api.aclose()
        await oauth.aclose()
    return kafka_deleted or account_deleted


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Managed Kafka e2e harness utilities")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("check-env", help="Validate the harness configuration")

    cleanup_parser = commands.add_parser(
        "cleanup", help="Delete the Kafka instance and service account of this run"
    )
    cleanup_parser.add_argument(
        "--wait", action="store_true", help="Wait until the Kafka instance is gone"
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Optional[Sequence[str]] = None, cfg: Optional[Settings] = None) -> int:
    args = _parse_args(argv)
    cfg = cfg or settings
    configure_logging(args.log_level or cfg.log_level)
    token = set_current_test(f"cli-{args.command}")
    try:
        if args.command == "check-env":
            return 0 if validate_environment(cfg) else 1

        if not validate_environment(cfg):
            return 1
        logger.info(
            "Cleaning up %s and %s", cfg.kafka_instance_name, cfg.service_account_name
        )
        try:
            asyncio.run(cleanup(cfg, wait=args.wait))
        except ApiError as exc:
            logger.error("Cleanup failed: %s", exc.full_message())
            return 1
        except WaitTimeoutError as exc:
            logger.error("Cleanup failed: %s", exc)
            return 1
        return 0
    finally:
        reset_current_test(token)


if __name__ == "__main__":
    sys.exit(main())
