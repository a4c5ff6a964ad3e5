"""
Constituent Repository
CRUD operations for portfolio constituents
"""

from app.domain.models import Constituent
from app.infrastructure.db.models import ConstituentModel
from app.infrastructure.db.repositories.detail_repository import AdjustmentDetailRepository


class ConstituentRepository(AdjustmentDetailRepository[ConstituentModel, Constituent]):
    """Repository for Constituent"""

    model = ConstituentModel
    domain = Constituent
