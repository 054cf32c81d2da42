"""
枚举类型定义模块

定义应用中使用的所有枚举类型。
所有枚举都继承自 str 和 Enum，这样既可以用作字符串，又具有枚举的特性。
"""
from enum import Enum


class Platform(str, Enum):
    """
    购买平台枚举

    目前只支持 iOS（Apple App Store 收据）。
    """
    ios = "ios"


class ProductEffectType(str, Enum):
    """
    商品效果类型枚举

    定义一笔购买对权益产生的效果：
    - grant_pro: 一次性解锁 Pro（旧版定价模式）
    - add_credits: 增加若干点数（消耗型商品）
    """
    grant_pro = "grant_pro"
    add_credits = "add_credits"


class UsageSource(str, Enum):
    """
    用量来源枚举

    授权时确定本次使用从哪里扣除，编辑成功后才提交：
    - bypass: 开发模式，不记录任何用量
    - pro: Pro 用户，不限次数
    - credit: 扣除一个点数
    - free: 占用一次免费额度
    """
    bypass = "bypass"
    pro = "pro"
    credit = "credit"
    free = "free"
