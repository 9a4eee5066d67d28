from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

def load_environment(dotenv_path: str = None) -> bool:
    """
    从.env文件加载环境变量 (LOG_LEVEL, NOVEL_STATS_CONFIG, NOVEL_STATS_DB)。
    已存在的环境变量不会被覆盖。
    """
    loaded = load_dotenv(dotenv_path)
    logger.debug(f"环境变量加载完成 (找到 .env: {loaded})。")
    return loaded
