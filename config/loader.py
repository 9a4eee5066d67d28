"""
配置加载器 (Config Loader)
读取 config.yaml 并合并 user_config.yaml，构建引擎使用的不可变查找表：
连载平台最低字数表与叙事关键词表。
"""
import copy
import logging
import os
import sys
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

import yaml

from core.exceptions import ConfigurationError
from core.schemas import KeywordDefinition, Platform

logger = logging.getLogger(__name__)

def get_resource_path(relative_path: str) -> str:
    """
    获取资源的正确路径
    """
    base_path = getattr(sys, "_MEIPASS", os.path.abspath("."))
    return os.path.join(base_path, relative_path)

CONFIG_PATH = get_resource_path("config.yaml")
USER_CONFIG_PATH = get_resource_path("user_config.yaml")

# 基础配置缺失时使用的内置默认值 (与 config.yaml 保持一致)
DEFAULT_CONFIG = {
    "platforms": {
        "kakao": {"name": "카카오페이지", "minimum": 5000},
        "naver": {"name": "네이버시리즈", "minimum": 5000},
        "munpia": {"name": "문피아", "minimum": 4500},
        "joara": {"name": "조아라", "minimum": 5000},
        "novelpia": {"name": "노벨피아", "minimum": 5500},
    },
    "narrative_keywords": {
        "speechPattern": {
            "label": "말투",
            "guidance": "try naming catchphrases or speech tics, intonation or dialect",
            "keywords": ["~다", "~요", "…", "?!", "!?", "말투", "톤", "사투리", "평소", "특유"],
        },
        "appearance": {
            "label": "외모",
            "guidance": "record visual and olfactory details so readers can picture the character",
            "keywords": ["눈", "머리", "머릿결", "피부", "체형", "키", "옷", "복장", "색", "빛", "향"],
        },
        "personality": {
            "label": "성격",
            "guidance": "describe values, desires and conflicts to sharpen motivation",
            "keywords": ["성격", "습관", "가치관", "목표", "불안", "욕망", "강박", "미덕", "결점", "갈등"],
        },
    },
    "stats": {
        "activity_days": 7,
        "timeline_days": 30,
        "default_target_word_count": 5500,
    },
    "storage": {
        "db_path": "data/content.db",
    },
}

def _merge_configs(base_config: dict, user_config: dict) -> dict:
    """
    合并基础配置和用户配置。
    用户配置中的每个顶层部分按键覆盖或扩展基础配置。
    """
    merged_config = copy.deepcopy(base_config)
    for section, values in user_config.items():
        if isinstance(values, dict) and isinstance(merged_config.get(section), dict):
            merged_config[section].update(values)
        else:
            merged_config[section] = values
    return merged_config

def _read_yaml(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"解析 {path} 文件失败: {e}", exc_info=True)
        raise ConfigurationError(f"错误: 解析 {path} 文件失败: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"错误: {path} 的顶层结构必须是映射。")
    return data

def load_config(config_path: str = None, user_config_path: str = None) -> dict:
    """
    加载并解析 config.yaml 和 user_config.yaml 文件，并进行合并。
    基础配置不存在时退回内置默认值。
    """
    config_path = config_path or os.getenv("NOVEL_STATS_CONFIG") or CONFIG_PATH
    user_config_path = user_config_path or USER_CONFIG_PATH

    if os.path.exists(config_path):
        base_config = _merge_configs(DEFAULT_CONFIG, _read_yaml(config_path))
    else:
        logger.warning(f"配置文件 {config_path} 未找到，使用内置默认配置。")
        base_config = copy.deepcopy(DEFAULT_CONFIG)

    user_config = _read_yaml(user_config_path) if os.path.exists(user_config_path) else {}
    return _merge_configs(base_config, user_config)

@lru_cache(maxsize=1)
def get_config() -> dict:
    """进程级配置 (启动时加载一次)"""
    return load_config()

def build_platform_table(config: dict) -> Mapping[str, Platform]:
    """将 platforms 配置转换为不可变的平台表"""
    table = {}
    for platform_id, entry in (config.get("platforms") or {}).items():
        try:
            minimum = int(entry["minimum"])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"平台 '{platform_id}' 缺少有效的 minimum: {e}")
        if minimum <= 0:
            raise ConfigurationError(f"平台 '{platform_id}' 的 minimum 必须为正数。")
        table[platform_id] = Platform(id=platform_id, name=entry.get("name", platform_id), minimum=minimum)
    return MappingProxyType(table)

def build_keyword_dictionary(config: dict) -> Mapping[str, KeywordDefinition]:
    """将 narrative_keywords 配置转换为不可变的关键词表 (类别 -> 有序关键词)"""
    table = {}
    for category, entry in (config.get("narrative_keywords") or {}).items():
        keywords = entry.get("keywords") or []
        if not isinstance(keywords, list):
            raise ConfigurationError(f"关键词类别 '{category}' 的 keywords 必须是列表。")
        table[category] = KeywordDefinition(
            id=category,
            label=entry.get("label", category),
            keywords=tuple(str(k) for k in keywords),
            guidance=entry.get("guidance", ""),
        )
    return MappingProxyType(table)

@lru_cache(maxsize=1)
def get_platform_table() -> Mapping[str, Platform]:
    return build_platform_table(get_config())

@lru_cache(maxsize=1)
def get_keyword_dictionary() -> Mapping[str, KeywordDefinition]:
    return build_keyword_dictionary(get_config())

def save_user_config(user_config_data: dict, path: str = None):
    """
    将用户配置字典写回到 user_config.yaml 文件。
    """
    path = path or USER_CONFIG_PATH
    try:
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(user_config_data, f, allow_unicode=True, sort_keys=False)
        logger.info(f"用户配置已成功保存到 {path}。")
    except OSError as e:
        logger.error(f"写入 {path} 文件失败: {e}", exc_info=True)
        raise ConfigurationError(f"错误: 写入 {path} 文件失败: {e}")
    get_config.cache_clear()
    get_platform_table.cache_clear()
    get_keyword_dictionary.cache_clear()
