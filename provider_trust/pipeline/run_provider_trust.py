"""
Command line entry point for ProviderTrust.

Scores documents, classifies profile edits and drives the verification
workflow against the configured profile store and audit log.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..audit.audit_logger import AuditLogger
from ..classify.sensitivity import check_exhaustive, classify_update
from ..errors import ProviderTrustError
from ..extraction.text_extractor import ExtensionDispatchExtractor, PlainTextExtractor
from ..match.scorer import VerificationScorer
from ..models import ProviderProfile
from ..normalize.config import (
    DEFAULT_CONFIG_PATH,
    get_default_trust_config,
    load_trust_config,
    save_trust_config,
    validate_trust_config,
)
from ..storage.profile_store import SQLiteProfileStore
from ..validation.update_validator import clean_provider_update
from ..verification.service import VerificationService

logger = logging.getLogger(__name__)


def _load_json_argument(value: str) -> Dict[str, Any]:
    """Parse a JSON object given inline or as @path."""
    if value.startswith("@"):
        value = Path(value[1:]).read_text(encoding="utf-8")
    data = json.loads(value)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


def _print_json(data: Any):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _build_service(config: Dict[str, Any]) -> VerificationService:
    store = SQLiteProfileStore(config["storage"]["db_path"])
    audit_config = config["audit"]
    audit_logger = AuditLogger(audit_config["db_path"], audit_config["notification_field_limit"])
    return VerificationService(store, audit_logger, VerificationScorer(config["scoring"]))


def cmd_verify(args, config: Dict[str, Any]) -> int:
    expected = _load_json_argument(args.expected)
    scorer = VerificationScorer(config["scoring"])

    if args.text:
        extractor = PlainTextExtractor()
        document = args.text
    else:
        extractor = ExtensionDispatchExtractor()
        document = args.document

    result = scorer.verify_document(document, expected, extractor)
    _print_json(result.to_document())
    return 0 if result.success else 1


def cmd_classify(args, config: Dict[str, Any]) -> int:
    update = clean_provider_update(_load_json_argument(args.update))
    _print_json(classify_update(update))
    return 0


def cmd_check_fields(args, config: Dict[str, Any]) -> int:
    check_exhaustive(ProviderProfile.content_field_names())
    print("All profile fields are classified")
    return 0


def cmd_init_config(args, config: Dict[str, Any]) -> int:
    return 0 if save_trust_config(get_default_trust_config(), args.path) else 1


def cmd_edit(args, config: Dict[str, Any]) -> int:
    service = _build_service(config)
    outcome = service.update_profile(args.id, _load_json_argument(args.update), actor=args.actor)
    _print_json({
        "verificationStatus": outcome.profile.verification_status.value,
        "isPublic": outcome.profile.is_public,
        "sensitiveFields": outcome.sensitive_fields,
        "revokedReason": outcome.profile.revoked_reason,
    })
    return 0


def cmd_approve(args, config: Dict[str, Any]) -> int:
    profile = _build_service(config).approve(args.id, actor=args.actor)
    print(f"{profile.id}: {profile.verification_status.value}")
    return 0


def cmd_reject(args, config: Dict[str, Any]) -> int:
    profile = _build_service(config).reject(args.id, reason=args.reason, actor=args.actor)
    print(f"{profile.id}: {profile.verification_status.value}")
    return 0


def cmd_submit(args, config: Dict[str, Any]) -> int:
    profile = _build_service(config).submit_for_verification(args.id, actor=args.actor)
    print(f"{profile.id}: {profile.verification_status.value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ProviderTrust verification tools")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Configuration file path")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", help="Also write logs to this file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify = subparsers.add_parser("verify", help="Score a document against expected values")
    source = verify.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Text file holding already extracted document text")
    source.add_argument("--document", help="Document to extract text from (.pdf, .txt)")
    verify.add_argument("--expected", required=True, help="Expected values as JSON or @file")
    verify.set_defaults(func=cmd_verify)

    classify = subparsers.add_parser("classify", help="List the sensitive fields of an update")
    classify.add_argument("--update", required=True, help="Update as JSON or @file")
    classify.set_defaults(func=cmd_classify)

    check = subparsers.add_parser("check-fields", help="Check every profile field is classified")
    check.set_defaults(func=cmd_check_fields)

    init_config = subparsers.add_parser("init-config", help="Write the default configuration")
    init_config.add_argument("path", help="Destination YAML file")
    init_config.set_defaults(func=cmd_init_config)

    edit = subparsers.add_parser("edit", help="Apply a profile edit")
    edit.add_argument("--id", required=True, help="Provider id")
    edit.add_argument("--update", required=True, help="Update as JSON or @file")
    edit.add_argument("--actor", help="User making the edit")
    edit.set_defaults(func=cmd_edit)

    for name, func, help_text in (
        ("approve", cmd_approve, "Approve a pending provider"),
        ("reject", cmd_reject, "Reject a pending provider"),
        ("submit", cmd_submit, "Resubmit a revoked or rejected provider"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--id", required=True, help="Provider id")
        sub.add_argument("--actor", help="Admin or user performing the action")
        if name == "reject":
            sub.add_argument("--reason", help="Review notes")
        sub.set_defaults(func=func)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the ProviderTrust command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if args.log_file:
        Path(args.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(args.log_file))
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    config = load_trust_config(args.config)
    if not validate_trust_config(config):
        logger.error(f"Invalid configuration in {args.config}")
        return 2

    try:
        return args.func(args, config)
    except (ProviderTrustError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
