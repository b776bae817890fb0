#!/usr/bin/env python3
"""Audit saved conversations: run the response validator over every assistant message."""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def main() -> int:
    from src.application.guardrails.audit import audit_conversation
    from src.application.guardrails.response_validator import format_validation_errors
    from src.application.guardrails.violation_detector import DetectionContext
    from src.domain.entities.chat_mode import ChatMode
    from src.infrastructure.config import load_config
    from src.infrastructure.persistence.conversation_memory import ConversationMemory

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("chat_ids", nargs="*", help="Conversations to audit (default: all)")
    parser.add_argument("--mode", choices=[m.value for m in ChatMode], default=ChatMode.BUILD.value)
    args = parser.parse_args()

    config = load_config()
    memory = ConversationMemory(config.persistence.output_dir)
    context = DetectionContext(mode=ChatMode(args.mode))
    chat_ids = args.chat_ids or memory.list_ids()

    failed = 0
    for chat_id in chat_ids:
        findings = audit_conversation(memory.load(chat_id), context)
        for finding in findings:
            print(f"--- {chat_id} message #{finding.index} ---")
            report = format_validation_errors([*finding.result.violations, *finding.result.warnings])
            print(report)
            if not finding.result.is_valid:
                failed += 1
    print(f"\nAudited {len(chat_ids)} conversations, {failed} invalid responses")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
