"""
账单仓储接口 - the host collaborator calls the gateway is allowed to make.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from .entity import Invoice, HostingService


class BillingRepository(ABC):
    """宿主账单仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """获取发票及其行项目"""
        pass

    @abstractmethod
    async def invoice_exists(self, invoice_id: int) -> bool:
        """检查发票是否存在（任意状态）"""
        pass

    @abstractmethod
    async def get_hosting(self, relid: int) -> Optional[HostingService]:
        """根据关联ID获取托管服务"""
        pass

    @abstractmethod
    async def transaction_exists(self, transaction_id: str) -> bool:
        """检查交易号是否已被记录"""
        pass

    @abstractmethod
    async def add_invoice_payment(
        self,
        invoice_id: int,
        transaction_id: str,
        amount: Decimal,
        fee: Decimal,
        gateway: str,
    ) -> None:
        """
        记录发票付款

        Implementations must raise DuplicateTransactionException when the
        transaction id is already recorded, so the uniqueness check and the
        insert behave as one operation.
        """
        pass

    @abstractmethod
    async def set_hosting_subscription_id(self, relid: int, subscription_id: str) -> bool:
        """保存订阅引用；返回是否找到并更新了托管服务"""
        pass

    @abstractmethod
    async def log_transaction(self, gateway: str, data: str, status: str) -> None:
        """写入网关日志"""
        pass
