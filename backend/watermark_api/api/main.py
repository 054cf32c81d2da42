"""
API 路由聚合模块

将所有业务路由模块聚合到一个统一的 router 中，
由 watermark_api/main.py 以 /v1 前缀注册到主应用上。

路由模块说明：
- entitlements: 权益查询
- edit: 图像编辑（付费墙）
- iap: 应用内购买验证
- utils: 健康检查
"""
from fastapi import APIRouter

from watermark_api.api.routes import (
    edit,  # 编辑路由
    entitlements,  # 权益路由
    iap,  # IAP 路由
    utils,  # 工具路由
)

api_router = APIRouter()

api_router.include_router(entitlements.router)  # /entitlements
api_router.include_router(edit.router)  # /edit
api_router.include_router(iap.router)  # /iap/*
api_router.include_router(utils.router)  # /utils/*
