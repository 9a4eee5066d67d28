"""
自定义异常类
用于在存储层、统计门面与展示层之间传递具有明确语义的错误信息。
"""

class ConfigurationError(Exception):
    """当应用配置不正确或缺失时发生错误"""
    pass

class StorageReadError(Exception):
    """当外部存储读取某一项统计数据失败时发生错误"""

    def __init__(self, statistic: str, project_id: str, cause: Exception = None):
        self.statistic = statistic
        self.project_id = project_id
        self.cause = cause
        super().__init__(statistic, project_id, cause)

    def __str__(self):
        return f"读取统计 '{self.statistic}' 失败 (项目: {self.project_id}): {self.cause}"

class UnknownStatisticError(ValueError):
    """当请求了未注册的统计项时发生错误"""
    pass
