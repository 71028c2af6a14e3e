"""Tool and resource registries."""

import inspect
import re
from typing import Dict, Iterator, List, Set

from demo_mcp.base import ProtocolEngine, ResourceDescriptor, ToolDescriptor

_TEMPLATE_PARAM = re.compile(r"{(\w+)}")


def template_params(uri_template: str) -> Set[str]:
    """Return the parameter names used in a URI template."""
    return set(_TEMPLATE_PARAM.findall(uri_template))


class ToolRegistry:
    """Tools keyed by their unique name."""

    def __init__(self):
        self._tools: Dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> ToolDescriptor:
        if descriptor.name in self._tools:
            raise ValueError(f"Tool already registered: {descriptor.name}")
        self._tools[descriptor.name] = descriptor
        return descriptor

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise KeyError(f"Unknown tool: {name}") from None

    def names(self) -> List[str]:
        return list(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


class ResourceRegistry:
    """Resource templates keyed by URI template."""

    def __init__(self):
        self._resources: Dict[str, ResourceDescriptor] = {}

    def register(self, descriptor: ResourceDescriptor) -> ResourceDescriptor:
        """
        Add a resource template.

        The template's parameters must be exactly the handler's parameters.
        """
        if descriptor.uri_template in self._resources:
            raise ValueError(f"Resource already registered: {descriptor.uri_template}")

        uri_params = template_params(descriptor.uri_template)
        handler_params = set(inspect.signature(descriptor.handler).parameters)
        if uri_params != handler_params:
            raise ValueError(
                f"URI template {descriptor.uri_template} expects {sorted(uri_params)} "
                f"but handler accepts {sorted(handler_params)}"
            )

        self._resources[descriptor.uri_template] = descriptor
        return descriptor

    def get(self, uri_template: str) -> ResourceDescriptor:
        try:
            return self._resources[uri_template]
        except KeyError:
            raise KeyError(f"Unknown resource: {uri_template}") from None

    def __iter__(self) -> Iterator[ResourceDescriptor]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)


def bind_registries(engine: ProtocolEngine, tools: ToolRegistry, resources: ResourceRegistry) -> ProtocolEngine:
    """Expose every registered tool and resource through the engine."""
    for tool in tools:
        engine.register_tool(tool)
        engine.logger.info(f"Registered tool: {tool.name}")
    for resource in resources:
        engine.register_resource(resource)
        engine.logger.info(f"Registered resource: {resource.uri_template}")
    return engine
