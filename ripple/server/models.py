"""
服务器端数据模型

纯数据类，用于API请求和响应的数据验证。
用户记录本身以字典（文档）形式在存储层和服务层之间传递，
因为字段投影会改变返回的形状。
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Literal

from pydantic import BaseModel, Field


Gender = Literal["male", "female"]


class EdgeKind(str, Enum):
    """关注关系的两种边，值即用户文档中的字段名"""
    USERS = "following"
    TOPICS = "followingTopics"


# User 相关模型
class Employment(BaseModel):
    """职业经历，company / job 均引用话题 id"""
    company: Optional[str] = None
    job: Optional[str] = None


class Education(BaseModel):
    """教育经历，school 引用话题 id"""
    school: Optional[str] = None
    major: Optional[str] = None
    diploma: Optional[int] = Field(default=None, ge=1, le=5)
    entrance_year: Optional[int] = None
    graduation_year: Optional[int] = None


class UserAuth(BaseModel):
    """用户认证（登录）请求模型"""
    name: str
    password: str


class UserProfile(BaseModel):
    """可编辑的资料字段"""
    avatar_url: Optional[str] = None
    gender: Optional[Gender] = None
    headline: Optional[str] = None
    locations: List[str] = []
    business: Optional[str] = None
    employments: List[Employment] = []
    educations: List[Education] = []


class UserRegister(UserProfile):
    """用户注册请求模型"""
    name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)


class UserUpdate(BaseModel):
    """用户部分更新请求模型，只有显式提交的字段会被合并"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=1)
    avatar_url: Optional[str] = None
    gender: Optional[Gender] = None
    headline: Optional[str] = None
    locations: Optional[List[str]] = None
    business: Optional[str] = None
    employments: Optional[List[Employment]] = None
    educations: Optional[List[Education]] = None


class Identity(BaseModel):
    """令牌中携带的身份信息"""
    id: str
    name: str


class Token(BaseModel):
    """登录响应"""
    token: str


# Topic 相关模型
class TopicCreate(BaseModel):
    """创建话题的请求模型"""
    name: str = Field(min_length=1, max_length=100)
    avatar_url: Optional[str] = None
    introduction: Optional[str] = None


class Topic(BaseModel):
    """话题数据模型"""
    id: str
    name: str
    avatar_url: Optional[str] = None
    introduction: Optional[str] = None
    created_at: datetime


__all__ = [
    "Gender",
    "EdgeKind",
    "Employment",
    "Education",
    "UserAuth",
    "UserProfile",
    "UserRegister",
    "UserUpdate",
    "Identity",
    "Token",
    "TopicCreate",
    "Topic",
]
