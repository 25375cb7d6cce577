import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from opt.base import ConfigurationError


# 加载 .env 文件中的环境变量
load_dotenv()


# AnnealConfig 字段 → 环境变量名
ANNEAL_ENV_VARS: Dict[str, str] = {
    "initial_temperature": "TUNER_INITIAL_TEMPERATURE",
    "cooling_steps": "TUNER_COOLING_STEPS",
    "cooling_fraction": "TUNER_COOLING_FRACTION",
    "steps_per_temp": "TUNER_STEPS_PER_TEMP",
}


def _anneal_overrides_from_env() -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for name, env_var in ANNEAL_ENV_VARS.items():
        value = os.getenv(env_var)
        if value:
            overrides[name] = value
    return overrides


def _optional_float(env_var: str) -> Optional[float]:
    value = os.getenv(env_var)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"环境变量 {env_var}={value!r} 不是合法的数字。") from exc


@dataclass
class TunerSettings:
    """调优相关配置。

    说明：
    - 退火参数只在设置了对应环境变量时才覆盖默认值，默认值与校验都在 AnnealConfig 中；
    - 可以通过环境变量或项目根目录的 .env 文件提供：
      TUNER_INITIAL_TEMPERATURE / TUNER_COOLING_STEPS / TUNER_COOLING_FRACTION /
      TUNER_STEPS_PER_TEMP / TUNER_JUDGE_TIMEOUT / TUNER_HISTORY_DIR / TUNER_JUDGES。
    """

    anneal_overrides: Dict[str, Any] = field(default_factory=_anneal_overrides_from_env)

    # 单个裁判的超时秒数；不设置则一直等待
    judge_timeout: Optional[float] = field(
        default_factory=lambda: _optional_float("TUNER_JUDGE_TIMEOUT")
    )

    # 退火历史（CSV / JSON）的输出目录；不设置则不写文件
    history_dir: Optional[str] = field(
        default_factory=lambda: os.getenv("TUNER_HISTORY_DIR") or None
    )

    # 裁判工厂，格式为 "module:callable"
    judges: Optional[str] = field(default_factory=lambda: os.getenv("TUNER_JUDGES") or None)


def get_tuner_settings() -> TunerSettings:
    return TunerSettings()


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    读取退火参数文件：先尝试 JSON，失败则按 YAML 解析。
    顶层必须是映射。
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"未找到配置文件: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except ValueError:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"无法解析配置文件 {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"配置文件的顶层结构必须是映射(dict)，但实际为: {type(data)!r}")
    return data
