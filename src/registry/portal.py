"""MOD portal API client.

Fetches full MOD metadata (all releases with their manifests) from
``{base_url}/api/mods/{name}/full``.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import jsonschema

from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants
from errors import ModNotOnRegistryError, RegistryError
from registry.models import MOD_INFO_SCHEMA, ModInfo

logger = logging.getLogger(__name__)


class ModPortalClient:
    """Thin client over the MOD portal's JSON API.

    Safe to call from several threads at once; response caching is done by
    ``common.http_client``.
    """

    def __init__(self, base_url: Optional[str] = None) -> None:
        self.base_url = (base_url or Constants.REGISTRY_URL).rstrip("/")

    def mod_url(self, name: str) -> str:
        return self.base_url + Constants.REGISTRY_MOD_PATH.format(name=quote(name, safe=""))

    def fetch_mod(self, name: str) -> ModInfo:
        """Fetch a MOD with every release.

        Args:
            name: MOD name.

        Returns:
            ModInfo

        Raises:
            ModNotOnRegistryError: the portal answered 404.
            RegistryError: transport failure, unexpected status, or a
                payload that is not valid JSON of the expected shape.
        """
        url = self.mod_url(name)
        status, _, data = get_json(url)

        if is_debug_enabled(logger):
            logger.debug(
                "Registry response",
                extra=extra_context(
                    event="registry_response",
                    component="portal",
                    action="fetch_mod",
                    status_code=status,
                    target=safe_url(url),
                    mod_name=name,
                ),
            )

        if status == 404:
            raise ModNotOnRegistryError(name)
        if status == 0:
            raise RegistryError(f"Registry unreachable while fetching {name}", context={"mod": name})
        if status != 200:
            raise RegistryError(
                f"Unexpected status {status} while fetching {name}",
                context={"mod": name, "status": status},
            )
        if data is None:
            raise RegistryError(f"Malformed registry response for {name}", context={"mod": name})

        try:
            jsonschema.validate(instance=data, schema=MOD_INFO_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise RegistryError(
                f"Malformed registry response for {name}: {exc.message}", context={"mod": name}
            ) from exc

        info = ModInfo.from_dict(data)
        logger.debug("Fetched %s with %d release(s)", info.name, len(info.releases))
        return info

