import argparse
import logging
import random
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from opt.base import ConfigurationError, EvaluationFailure
from opt.sa import CoefficientNeighborhood, HistoryObserver, LoggingObserver, build_config

from .config import get_tuner_settings, load_config_file
from .judges import load_judges
from .tuner import RulesetTuner


LOG_DIR_NAME = "logs"
KEEP_LOG_FILES = 10

logger = logging.getLogger("ruleset_tuner.cli")


def setup_logging(log_dir: Path) -> Path:
    """为每次调优生成带时间戳的日志文件，只保留最近 10 个。"""
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"tune_{timestamp}.log"

    old_logs = sorted(log_dir.glob("tune_*.log"), key=lambda p: p.stat().st_mtime, reverse=True)
    for old_log in old_logs[KEEP_LOG_FILES - 1:]:
        try:
            old_log.unlink()
        except OSError:
            pass  # 删除失败不影响主流程

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8", mode="w"),
        ],
    )
    logger.info("=== 新调优会话启动，日志文件：%s ===", log_file.name)
    return log_file


def _parse_floats(text: Optional[str], name: str) -> Optional[List[float]]:
    if text is None:
        return None
    try:
        return [float(v) for v in text.split(",") if v.strip()]
    except ValueError as exc:
        raise ConfigurationError(f"{name} 应为逗号分隔的数字列表，但实际为: {text!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="用模拟退火调优规则集系数")
    parser.add_argument("--judges", help="裁判工厂，格式为 module:callable（默认读取 TUNER_JUDGES）")
    parser.add_argument("--trainable", required=True, help="要调优的规则集 ID")
    parser.add_argument("--x0", required=True, help="初始系数，逗号分隔")
    parser.add_argument("--lower", help="系数下界，逗号分隔")
    parser.add_argument("--upper", help="系数上界，逗号分隔")
    parser.add_argument("--step-scale", type=float, default=0.1, help="邻域扰动尺度")
    parser.add_argument("--decimals", type=int, default=None, help="系数保留的小数位数")
    parser.add_argument("--config", type=Path, help="退火参数文件（JSON 或 YAML）")
    parser.add_argument("--initial-temperature", type=float)
    parser.add_argument("--cooling-steps", type=int)
    parser.add_argument("--cooling-fraction", type=float)
    parser.add_argument("--steps-per-temp", type=int)
    parser.add_argument("--judge-timeout", type=float, help="单个裁判的超时秒数")
    parser.add_argument("--history-dir", type=Path, help="退火历史输出目录")
    parser.add_argument("--seed", type=int, help="随机种子")
    parser.add_argument("--log-dir", type=Path, help="日志目录（默认为当前工作目录下的 logs/）")
    return parser


def build_tuner(args: argparse.Namespace) -> RulesetTuner:
    """按“默认值 < 环境变量 < 配置文件 < 命令行参数”的优先级组装调优器。"""
    settings = get_tuner_settings()

    overrides = dict(settings.anneal_overrides)
    if args.config is not None:
        overrides.update(load_config_file(args.config))
    for name in ("initial_temperature", "cooling_steps", "cooling_fraction", "steps_per_temp"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    config = build_config(**overrides)

    judges_target = args.judges or settings.judges
    if not judges_target:
        raise ConfigurationError("未指定裁判工厂，请使用 --judges 或设置 TUNER_JUDGES。")
    judges = load_judges(judges_target)

    rng = random.Random(args.seed)
    neighborhood = CoefficientNeighborhood(
        _parse_floats(args.x0, "x0"),
        lower_bounds=_parse_floats(args.lower, "lower"),
        upper_bounds=_parse_floats(args.upper, "upper"),
        step_scale=args.step_scale,
        decimals=args.decimals,
        rng=rng,
    )

    observers = [LoggingObserver()]
    history_dir = args.history_dir or settings.history_dir
    if history_dir:
        observers.append(HistoryObserver(Path(history_dir)))

    judge_timeout = args.judge_timeout if args.judge_timeout is not None else settings.judge_timeout
    return RulesetTuner(
        judges,
        args.trainable,
        neighborhood,
        config=config,
        judge_timeout=judge_timeout,
        observers=observers,
        rng=rng,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """命令行调优入口。"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_dir or Path.cwd() / LOG_DIR_NAME)

    try:
        tuner = build_tuner(args)
    except ConfigurationError as exc:
        logger.exception("调优参数配置错误：%s", exc)
        print(f"[错误] 配置不合法：{exc}")
        return 2
    except Exception as exc:  # noqa: BLE001
        logger.exception("组装调优器时发生未预期的错误：%s", exc)
        print(f"[错误] 组装调优器失败：{exc}")
        return 1

    try:
        report = tuner.tune_sync()
    except EvaluationFailure as exc:
        logger.exception("调优过程中评估失败：%s", exc)
        print(f"[错误] 评估失败，调优已中止：{exc}")
        return 1
    except Exception as exc:  # noqa: BLE001
        logger.exception("调优过程中发生未预期的错误：%s", exc)
        print(f"[错误] 调优失败：{exc}")
        return 1

    coeffs = ", ".join(repr(v) for v in report.best_solution)
    print(f"Tuned coefficients for {args.trainable}: {coeffs}.")
    print(f"最优代价：{report.best_cost}")
    print(
        f"迭代 {report.attempts} 次，接受较差解 {report.accepted_worse} 次，"
        f"缓存命中率 {report.hit_rate:.3f}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
