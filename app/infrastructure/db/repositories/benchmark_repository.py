"""
Benchmark Repository
CRUD operations for portfolio benchmarks
"""

from app.domain.models import Benchmark
from app.infrastructure.db.models import BenchmarkModel
from app.infrastructure.db.repositories.detail_repository import AdjustmentDetailRepository


class BenchmarkRepository(AdjustmentDetailRepository[BenchmarkModel, Benchmark]):
    """Repository for Benchmark"""

    model = BenchmarkModel
    domain = Benchmark
