"""
Kubernetes API client for Cluster API Machines and core Nodes.
"""

import json
import logging
import os
import time
from typing import Callable, List, Optional, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from models import Machine, Node

logger = logging.getLogger(__name__)

# Cluster API group/version serving Machine objects
MACHINES_GROUP = "cluster.k8s.io"
MACHINES_VERSION = "v1alpha1"
MACHINES_PLURAL = "machines"

DEFAULT_KUBECONFIG = os.path.join("~", ".kube", "config")


class ClusterApiError(RuntimeError):
    """Request to the cluster API server failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConflictError(ClusterApiError):
    """Update rejected because the object changed since it was read."""


class MachineRepository(Protocol):
    """Reads and updates Machine records."""

    def list_machines(self) -> List[Machine]: ...

    def get_machine(self, name: str) -> Machine: ...

    def update_machine(self, machine: Machine) -> Machine: ...


class NodeStatusOracle(Protocol):
    """Reads observed Node status."""

    def get_node(self, name: str) -> Node: ...


def load_api_client(
    kubeconfig: Optional[str] = None, context: Optional[str] = None
) -> client.ApiClient:
    """
    Build an API client from a kubeconfig file.

    Without an explicit kubeconfig, ~/.kube/config is used when it exists,
    otherwise the in-cluster service account configuration.

    Args:
        kubeconfig: Path to a kubeconfig file
        context: Optional kubeconfig context to use

    Returns:
        Configured kubernetes ApiClient
    """
    if kubeconfig is None:
        default_path = os.path.expanduser(DEFAULT_KUBECONFIG)
        if not os.path.exists(default_path):
            logger.info("No kubeconfig found, using in-cluster configuration")
            config.load_incluster_config()
            return client.ApiClient()
        kubeconfig = default_path

    kubeconfig = os.path.expanduser(kubeconfig)
    logger.info(f"Using kubeconfig {kubeconfig}")
    return config.new_client_from_config(config_file=kubeconfig, context=context)


class ClusterApiClient:
    """Client for Machine and Node objects of one cluster."""

    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(
        self,
        api_client: client.ApiClient,
        namespace: str = "default",
        timeout_s: int = 30,
        max_retries: int = 3,
        base_delay: float = 1.0,
        page_size: int = 100,
    ):
        """
        Initialize the cluster API client.

        Args:
            api_client: Configured kubernetes ApiClient (see load_api_client)
            namespace: Namespace holding the Machine objects
            timeout_s: Request timeout in seconds
            max_retries: Maximum number of retries for transient errors
            base_delay: Base delay for exponential backoff
            page_size: Number of machines requested per list page
        """
        self.api_client = api_client
        self.namespace = namespace
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.page_size = page_size

        self.custom_api = client.CustomObjectsApi(api_client)
        self.core_api = client.CoreV1Api(api_client)

    def _call_with_retry(self, what: str, func: Callable, *args, **kwargs):
        """
        Call a kubernetes API method, retrying transient errors with backoff.

        Args:
            what: Description of the request for messages
            func: Bound kubernetes API method
            *args, **kwargs: Arguments for func

        Returns:
            The API method's result

        Raises:
            ConflictError: If the server answered 409
            ClusterApiError: On any other error, or when retries are exhausted
        """
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                return func(*args, _request_timeout=self.timeout_s, **kwargs)
            except ApiException as e:
                message = self._error_message(e)
                if e.status == 409:
                    raise ConflictError(f"{what} conflicted: {message}", e.status) from e
                if e.status not in self.RETRYABLE_STATUS_CODES:
                    raise ClusterApiError(
                        f"{what} failed ({e.status}): {message}", e.status
                    ) from e
                delay = self._calculate_delay(attempt, e)
                logger.warning(
                    f"Retryable error {e.status} ({message}), attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                last_error = f"HTTP {e.status}: {message}"
            except Exception as e:
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Request error: {e}, attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                last_error = str(e)

            if attempt < self.max_retries:
                time.sleep(delay)

        raise ClusterApiError(f"{what}: max retries exceeded. Last error: {last_error}")

    def _calculate_delay(self, attempt: int, error: Optional[ApiException] = None) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number
            error: Optional API error (to check Retry-After header)

        Returns:
            Delay in seconds
        """
        headers = getattr(error, "headers", None) or {}
        if "Retry-After" in headers:
            try:
                return float(headers["Retry-After"])
            except ValueError:
                pass

        delay = self.base_delay * (2**attempt)
        jitter = delay * 0.2 * (0.5 - time.time() % 1)
        return min(delay + jitter, 60.0)

    @staticmethod
    def _error_message(error: ApiException) -> str:
        """Extract the Status message from an API error."""
        try:
            return json.loads(error.body).get("message", "") or str(error.reason)
        except (TypeError, ValueError, AttributeError):
            return str(error.reason)

    def list_machines(self) -> List[Machine]:
        """
        List all Machine objects in the namespace.

        Returns:
            Machines in the order served by the API

        Raises:
            ClusterApiError: If API call fails
        """
        machines: List[Machine] = []
        continue_token: Optional[str] = None

        while True:
            kwargs = {"limit": self.page_size}
            if continue_token:
                kwargs["_continue"] = continue_token

            data = self._call_with_retry(
                "List machines",
                self.custom_api.list_namespaced_custom_object,
                MACHINES_GROUP,
                MACHINES_VERSION,
                self.namespace,
                MACHINES_PLURAL,
                **kwargs,
            )
            for item in data.get("items", []):
                machines.append(Machine.from_dict(item))

            continue_token = data.get("metadata", {}).get("continue")
            if not continue_token:
                break

        return machines

    def get_machine(self, name: str) -> Machine:
        """
        Get a single Machine object.

        Raises:
            ClusterApiError: If API call fails
        """
        data = self._call_with_retry(
            f"Get machine {name}",
            self.custom_api.get_namespaced_custom_object,
            MACHINES_GROUP,
            MACHINES_VERSION,
            self.namespace,
            MACHINES_PLURAL,
            name,
        )
        return Machine.from_dict(data)

    def update_machine(self, machine: Machine) -> Machine:
        """
        Replace a Machine object.

        The request carries the machine's resourceVersion, so the server
        rejects it with 409 if the object changed since it was read.

        Args:
            machine: Machine with the desired fields set

        Returns:
            The machine as stored by the server

        Raises:
            ConflictError: If the object changed since it was read
            ClusterApiError: If API call fails
        """
        data = self._call_with_retry(
            f"Update machine {machine.name}",
            self.custom_api.replace_namespaced_custom_object,
            MACHINES_GROUP,
            MACHINES_VERSION,
            self.namespace,
            MACHINES_PLURAL,
            machine.name,
            machine.to_dict(),
        )
        return Machine.from_dict(data)

    def get_node(self, name: str) -> Node:
        """
        Get a Node object.

        Raises:
            ClusterApiError: If API call fails
        """
        node = self._call_with_retry(
            f"Get node {name}", self.core_api.read_node, name
        )
        return Node.from_dict(self.api_client.sanitize_for_serialization(node))
