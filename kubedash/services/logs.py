"""
Log Service - Namespace and pod listing, and time-paged pod logs.
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from kubedash.core.bucketing import as_utc
from kubedash.core.pod_logs import paginate_log_lines
from kubedash.models.logs import LogPage
from kubedash.services.k8s import KubernetesNodeSource

logger = logging.getLogger(__name__)


class LogService:
    def __init__(self, node_source: KubernetesNodeSource, default_max_lines: int = 100):
        self.node_source = node_source
        self.default_max_lines = default_max_lines

    def namespaces(self) -> List[str]:
        return self.node_source.namespaces()

    def pods(self, namespace: str) -> List[str]:
        return self.node_source.pods(namespace)

    def pod_logs(self, namespace: str, pod_name: str,
                 start_time: Optional[datetime] = None,
                 end_time: Optional[datetime] = None,
                 max_lines: Optional[int] = None,
                 now: Optional[datetime] = None) -> LogPage:
        """
        One page of a pod's log.

        Only lines since `start_time` are requested from the kubelet
        (rounded up to whole seconds); without it the whole retained log is read.

        Raises:
            ValueError: If start_time is after end_time or max_lines is not positive
        """
        start_time = as_utc(start_time) if start_time is not None else None
        end_time = as_utc(end_time) if end_time is not None else None
        if start_time is not None and end_time is not None and start_time > end_time:
            raise ValueError("start_time must not be after end_time")

        since_seconds = None
        if start_time is not None:
            now = as_utc(now or datetime.now(timezone.utc))
            since_seconds = max(math.ceil((now - start_time).total_seconds()), 1)

        if max_lines is None:
            max_lines = self.default_max_lines
        if max_lines <= 0:
            raise ValueError("max_lines must be positive")

        lines = self.node_source.pod_log(namespace, pod_name, since_seconds=since_seconds)
        page = paginate_log_lines(lines, start_time, end_time, max_lines)
        if lines and not page.logs and not page.has_more:
            logger.warning("No timestamped log lines in range for %s/%s", namespace, pod_name)
        return page
