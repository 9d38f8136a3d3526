"""
Synchronous access to the async tempestwx API.

Functions decorated with ``add_sync_version`` gain a ``.sync`` attribute that
runs them to completion on a fresh event loop::

    from tempestwx import get_precip_history
    history = get_precip_history.sync(api_key="...")
"""

import asyncio
import inspect
import typing
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union, get_args, get_origin

R = TypeVar("R")


class AsyncSyncBridge:
    """Runs async functions synchronously, creating a client when needed."""

    @staticmethod
    def run_async(
        async_fn: Callable[..., Awaitable[R]],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        client_class: Optional[type] = None,
    ) -> R:
        """Run an async function synchronously.

        Args:
            async_fn: Async function to run
            args: Positional arguments for the function
            kwargs: Keyword arguments for the function
            client_class: Optional client class to instantiate if not provided

        Returns:
            Result of running the async function

        Raises:
            RuntimeError: If called from within a running event loop
        """
        if kwargs is None:
            kwargs = {}

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError(
                "Cannot use sync version from within an existing asyncio event loop. "
                "Use the async version instead."
            )

        temp_client = None
        if client_class:
            sig = inspect.signature(async_fn)
            client_param = sig.parameters.get("client")
            if client_param and "client" not in kwargs:
                client_kwargs = {}
                api_key = sig.bind_partial(*args, **kwargs).arguments.get("api_key")
                if api_key is not None:
                    client_kwargs["api_key"] = api_key
                temp_client = client_class(**client_kwargs)
                kwargs["client"] = temp_client

        async def _call_and_cleanup() -> R:
            try:
                return await async_fn(*args, **kwargs)
            finally:
                if temp_client:
                    await temp_client.close()

        return asyncio.run(_call_and_cleanup())

    @staticmethod
    def extract_client_class(annotation: Any) -> Optional[type]:
        """Extract a client class from a type annotation.

        Handles Optional, Union, and direct type annotations.
        """
        if annotation is None or annotation is inspect.Parameter.empty:
            return None

        origin = get_origin(annotation)
        if origin is Union:
            non_none_args = [arg for arg in get_args(annotation) if arg is not type(None)]
            if non_none_args:
                annotation = non_none_args[0]
            else:
                return None

        if isinstance(annotation, type) and annotation is not typing.Any:
            return annotation
        return None
