"""
账单仓储实现 - 使用SQLAlchemy访问宿主账单表
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.billing.entity import HostingService, Invoice, InvoiceItem
from domain.billing.repository import BillingRepository
from domain.common.exceptions import DuplicateTransactionException, InvoiceNotFoundException
from infrastructure.models.billing import (
    AccountModel,
    GatewayLogModel,
    HostingModel,
    InvoiceModel,
)


logger = get_logger(__name__)


class SQLAlchemyBillingRepository(BillingRepository):
    """账单仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: InvoiceModel) -> Invoice:
        """将数据库模型转换为领域实体"""
        return Invoice(
            id=model.id,
            status=model.status,
            total=Decimal(model.total or 0),
            currency=model.currency,
            items=[
                InvoiceItem(
                    id=item.id,
                    invoice_id=item.invoiceid,
                    type=item.type,
                    relid=item.relid,
                    description=item.description,
                    amount=Decimal(item.amount or 0),
                )
                for item in model.items
            ],
        )

    async def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        model = await self.session.get(InvoiceModel, invoice_id)
        return self._to_entity(model) if model else None

    async def invoice_exists(self, invoice_id: int) -> bool:
        stmt = select(func.count()).select_from(InvoiceModel).where(InvoiceModel.id == invoice_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one()) > 0

    async def get_hosting(self, relid: int) -> Optional[HostingService]:
        model = await self.session.get(HostingModel, relid)
        if model is None:
            return None
        return HostingService(
            id=model.id,
            package_id=model.packageid,
            billing_cycle=model.billingcycle,
            subscription_id=model.subscriptionid or None,
        )

    async def transaction_exists(self, transaction_id: str) -> bool:
        stmt = select(func.count()).select_from(AccountModel).where(AccountModel.transid == transaction_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one()) > 0

    async def add_invoice_payment(
        self,
        invoice_id: int,
        transaction_id: str,
        amount: Decimal,
        fee: Decimal,
        gateway: str,
    ) -> None:
        """记录付款；发票付清时标记为 Paid"""
        invoice = await self.session.get(InvoiceModel, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundException(invoice_id)

        self.session.add(
            AccountModel(
                invoiceid=invoice_id,
                gateway=gateway,
                transid=transaction_id,
                amountin=amount,
                fees=fee,
            )
        )
        try:
            await self.session.flush()
        except IntegrityError as e:
            # transid 唯一约束冲突：并发重复投递
            logger.warning("add_invoice_payment_conflict", invoice_id=invoice_id, transaction_id=transaction_id)
            raise DuplicateTransactionException(transaction_id) from e

        paid_stmt = select(func.coalesce(func.sum(AccountModel.amountin), 0)).where(AccountModel.invoiceid == invoice_id)
        paid = Decimal((await self.session.execute(paid_stmt)).scalar_one())
        if invoice.status == "Unpaid" and paid >= Decimal(invoice.total or 0):
            invoice.status = "Paid"
            invoice.datepaid = datetime.now(timezone.utc)
            invoice.paymentmethod = gateway
            await self.session.flush()
        logger.info(
            "invoice_payment_added",
            invoice_id=invoice_id,
            transaction_id=transaction_id,
            amount=str(amount),
            total_paid=str(paid),
            status=invoice.status,
        )

    async def set_hosting_subscription_id(self, relid: int, subscription_id: str) -> bool:
        stmt = (
            update(HostingModel)
            .where(HostingModel.id == relid)
            .values(subscriptionid=subscription_id)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def log_transaction(self, gateway: str, data: str, status: str) -> None:
        self.session.add(GatewayLogModel(gateway=gateway, data=data, result=status))
        await self.session.flush()
