"""
Channel Resolver - 渠道端点与密钥配置解析

把管理员编辑的端点配置与密钥输入规范化为确定的持久化形式，
并在出站调用时解析最终 URL、选择密钥。
"""

__version__ = "0.1.0"
