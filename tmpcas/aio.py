from __future__ import annotations

import functools
from typing import IO

import anyio
import anyio.to_thread
from anyio import AsyncFile

from tmpcas.handle import Handle
from tmpcas.tmpcas import PathLikeArg, TemporaryStore


class AsyncTemporaryStore:
    """Async front for a [`TemporaryStore`][tmpcas.tmpcas.TemporaryStore].

    All blocking work is run in worker threads through `anyio`, so the store
    can be used from asyncio or trio code without stalling the event loop.

    Parameters:
        store: The store to wrap. Closing the wrapper closes it.
    """

    def __init__(self, store: TemporaryStore) -> None:
        self._store = store

    @property
    def store_sync(self) -> TemporaryStore:
        """The wrapped synchronous store"""
        return self._store

    async def store(self, stream: IO[bytes]) -> Handle:
        """See [`TemporaryStore.store`][tmpcas.tmpcas.TemporaryStore.store]."""
        return await anyio.to_thread.run_sync(self._store.store, stream)

    async def store_path(self, pathlike: PathLikeArg) -> Handle:
        return await anyio.to_thread.run_sync(self._store.store_path, pathlike)

    async def load(self, handle: Handle) -> AsyncFile[bytes]:
        """Return an async binary file over the blob of `handle`. The caller is
        responsible for closing it, e.g. with `async with`.

        Raises:
            BlobNotFoundError: If no blob is stored for the handle.
        """
        file = await anyio.to_thread.run_sync(self._store.load, handle)
        return anyio.wrap_file(file)

    def get_location(self, handle: Handle) -> str:
        return self._store.get_location(handle)

    async def exists(self, handle: Handle) -> bool:
        return await anyio.to_thread.run_sync(self._store.exists, handle)

    async def aclose(self) -> None:
        await anyio.to_thread.run_sync(self._store.close)

    async def __aenter__(self) -> AsyncTemporaryStore:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


async def open_store(*args, **kwargs) -> AsyncTemporaryStore:
    """Create a [`TemporaryStore`][tmpcas.tmpcas.TemporaryStore] in a worker
    thread and wrap it. Takes the same arguments as `TemporaryStore`.
    """
    store = await anyio.to_thread.run_sync(
        functools.partial(TemporaryStore, *args, **kwargs)
    )
    return AsyncTemporaryStore(store)
