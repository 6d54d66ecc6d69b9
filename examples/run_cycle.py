#!/usr/bin/env python
"""Run Cycle Example - 한 번의 오케스트레이션 주기 실행 예제.

저장된 Agent 카탈로그를 읽어 플래너에게 계획을 요청하고, 각 단계를
순서대로 실행한 뒤 대화 기록을 출력합니다. 설정은 환경 변수(.env)와
선택적인 YAML 파일에서 읽습니다.

사용법:
    python examples/run_cycle.py "Write a haiku about autumn, then narrate it"
    python examples/run_cycle.py --output-type image "A red fox in the snow"
    python examples/run_cycle.py --add-sample-agent "Write a haiku about rain"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from nexus.core import Orchestrator
from nexus.models import AUTO_DETECT, Agent, Capability, ChatMessage, SenderRole
from nexus.storage import AgentStore, HistoryStore
from nexus.utils.config import LogFormat, init_config
from nexus.utils.logging import setup_logging
from nexus.utils.observability import init_observability, shutdown_observability


def add_sample_agent(store: AgentStore) -> None:
    """샘플 Agent가 없으면 등록합니다."""
    if any(agent.name == "Poet" for agent in store.list()):
        return
    agent = store.save(
        Agent(
            name="Poet",
            description="Writes short poems",
            system_prompt="You are a poet. Answer only with the poem, in haiku form.",
            capabilities=[Capability.TEXT, Capability.AUDIO],
        )
    )
    print(f"Agent 등록됨: {agent.name} ({agent.id})")


def print_message(message: ChatMessage) -> None:
    """대화 기록 항목 하나를 출력합니다."""
    if message.sender == SenderRole.AGENT:
        label = f"agent:{message.agent_id}"
    else:
        label = message.sender.value
    marker = " [error]" if message.is_error else ""
    print(f"\n[{label}]{marker}")
    print(message.text)

    if message.orchestration_plan:
        for i, step in enumerate(message.orchestration_plan, start=1):
            print(f"  {i}. ({step.requested_output_type}) {step.agent_id}: {step.task_description}")
    if message.image_url:
        print(f"  image: {message.image_url[:60]}...")
    if message.audio_text:
        print(f"  audio: {message.audio_text}")


async def run(args: argparse.Namespace) -> int:
    config = init_config(yaml_path=args.config)
    setup_logging(
        level=config.logging.level,
        json_format=config.logging.format == LogFormat.JSON,
        log_file=config.logging.file,
        app_name=config.app.name,
    )
    init_observability(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        enabled=config.langfuse.enabled,
    )

    agents = AgentStore(config.storage.path)
    history = HistoryStore(config.storage.path, max_entries=config.history.max_entries)
    if args.add_sample_agent:
        add_sample_agent(agents)

    orchestrator = Orchestrator.from_config(config, catalog=agents.catalog, history=history)

    print("=" * 60)
    print(f"요청: {args.message}")
    print(f"출력 종류: {args.output_type}")
    print("=" * 60)

    try:
        result = await orchestrator.send_message(args.message, args.output_type)
        await orchestrator.executor.wait_for_speech_cues()
        await orchestrator.wait_for_pending_saves()
    finally:
        shutdown_observability()

    for message in result.messages:
        print_message(message)

    print()
    print("-" * 60)
    if result.error is not None:
        print(f"실패: {result.error}")
        return 1
    failed = sum(1 for outcome in result.step_outcomes if outcome.is_error)
    print(f"완료: 단계 {len(result.step_outcomes)}개, 실패 {failed}개")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run one Nexus orchestration cycle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("message", help="User message to orchestrate")
    parser.add_argument(
        "--output-type",
        choices=[AUTO_DETECT, *Capability.values()],
        default=AUTO_DETECT,
        help="Desired output type (default: auto-detect)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Optional YAML configuration file",
    )
    parser.add_argument(
        "--add-sample-agent",
        action="store_true",
        help="Register a sample 'Poet' agent before running",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
