"""
批量删除

每条记录一个删除任务并发执行，逐条汇报结果；单条失败不会中断其余任务
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List

from loguru import logger

from .providers.base import DnsProvider
from .types import BatchDeleteFailure, BatchDeleteResult


class BatchDeleteStats:
    """线程安全的批量删除统计管理器"""

    def __init__(self):
        self._lock = threading.Lock()
        self._success_count = 0
        self._failures: List[BatchDeleteFailure] = []

    def add_success(self, record_id: str) -> None:
        with self._lock:
            self._success_count += 1
        logger.debug(f"记录删除成功: {record_id}")

    def add_failure(self, record_id: str, reason: str) -> None:
        with self._lock:
            self._failures.append(BatchDeleteFailure(record_id=record_id, reason=reason))
        logger.debug(f"记录删除失败: {record_id} -> {reason}")

    def get_result(self) -> BatchDeleteResult:
        with self._lock:
            return BatchDeleteResult(success_count=self._success_count, failures=list(self._failures))

    def get_summary(self) -> str:
        """
        获取统计摘要文本

        Returns:
            摘要文本
        """
        with self._lock:
            total = self._success_count + len(self._failures)
            return f"总计: {total} 条记录, 成功: {self._success_count}, 失败: {len(self._failures)}"


def batch_delete_records(provider: DnsProvider, domain_id: str, record_ids: Iterable[str],
                         max_workers: int = 5) -> BatchDeleteResult:
    """
    并发删除多条DNS记录

    Args:
        provider: DNS提供商实例
        domain_id: 域名ID
        record_ids: 记录ID列表，重复的ID只删除一次
        max_workers: 最大线程数

    Returns:
        批量删除结果 {success_count, failed_count, failures}
    """
    unique_ids = list(dict.fromkeys(record_ids))
    stats = BatchDeleteStats()

    if not unique_ids:
        logger.info("没有记录需要删除")
        return stats.get_result()

    max_threads = max(1, min(max_workers, len(unique_ids)))
    logger.info(f"开始批量删除 {len(unique_ids)} 条记录，使用 {max_threads} 个线程")

    with ThreadPoolExecutor(max_workers=max_threads) as executor:
        future_to_record = {
            executor.submit(provider.delete_record, record_id, domain_id): record_id
            for record_id in unique_ids
        }

        # 等待全部任务完成，不设置超时
        for future in as_completed(future_to_record):
            record_id = future_to_record[future]
            try:
                future.result()
                stats.add_success(record_id)
            except Exception as e:
                logger.error(f"删除记录 {record_id} 失败: {str(e)}")
                stats.add_failure(record_id, str(e))

    logger.info(f"批量删除完成: {stats.get_summary()}")
    return stats.get_result()
