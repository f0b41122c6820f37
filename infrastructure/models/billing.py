"""
宿主账单数据库模型 - SQLAlchemy ORM 映射
注意：这些表归账单宿主所有，网关只读取并更新少量列
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Text,
    Index, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .base import Base


class InvoiceModel(Base):
    """发票表"""
    __tablename__ = "tblinvoices"

    id = Column(Integer, primary_key=True, index=True)
    userid = Column(Integer, nullable=True, index=True, comment="客户ID")
    status = Column(String(20), nullable=False, default="Unpaid", index=True, comment="Unpaid/Paid/Cancelled/Refunded")
    total = Column(Numeric(precision=16, scale=2), nullable=False, default=0, comment="发票总额")
    currency = Column(String(3), nullable=False, default="USD", comment="货币代码 ISO-4217")
    paymentmethod = Column(String(100), nullable=True, comment="支付网关模块名")
    datepaid = Column(DateTime(timezone=True), nullable=True, comment="付清时间")

    items = relationship(
        "InvoiceItemModel",
        back_populates="invoice",
        order_by="InvoiceItemModel.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<InvoiceModel(id={self.id}, status='{self.status}', total={self.total})>"


class InvoiceItemModel(Base):
    """发票行项目表"""
    __tablename__ = "tblinvoiceitems"

    id = Column(Integer, primary_key=True, index=True)
    invoiceid = Column(Integer, ForeignKey("tblinvoices.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(30), nullable=False, default="", comment="Hosting/Addon/Domain...")
    relid = Column(Integer, nullable=False, default=0, comment="关联实体ID，如 tblhosting.id")
    description = Column(Text, nullable=False, default="")
    amount = Column(Numeric(precision=16, scale=2), nullable=False, default=0)

    invoice = relationship("InvoiceModel", back_populates="items")


class HostingModel(Base):
    """托管服务表"""
    __tablename__ = "tblhosting"

    id = Column(Integer, primary_key=True, index=True)
    packageid = Column(Integer, nullable=True, comment="产品ID")
    billingcycle = Column(String(30), nullable=False, default="", comment="计费周期")
    subscriptionid = Column(String(200), nullable=True, comment="远程订阅引用")


class AccountModel(Base):
    """
    交易记录表

    transid 唯一约束保证同一交易只入账一次（并发重复投递由数据库兜底）
    """
    __tablename__ = "tblaccounts"

    id = Column(Integer, primary_key=True, index=True)
    invoiceid = Column(Integer, ForeignKey("tblinvoices.id"), nullable=False, index=True)
    gateway = Column(String(100), nullable=False, comment="支付网关模块名")
    transid = Column(String(200), nullable=False, comment="远程交易号")
    amountin = Column(Numeric(precision=16, scale=2), nullable=False, default=0)
    fees = Column(Numeric(precision=16, scale=2), nullable=False, default=0)
    date = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("transid", name="uq_tblaccounts_transid"),
        Index("idx_tblaccounts_invoice_date", "invoiceid", "date"),
    )


class GatewayLogModel(Base):
    """网关日志表"""
    __tablename__ = "tblgatewaylog"

    id = Column(Integer, primary_key=True, index=True)
    gateway = Column(String(100), nullable=False)
    data = Column(Text, nullable=False, default="")
    result = Column(String(100), nullable=False, default="", comment="事件类型或处理结果")
    date = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
