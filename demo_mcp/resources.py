"""Demo resources."""

from demo_mcp.base import ResourceDescriptor
from demo_mcp.registry import ResourceRegistry


def greeting(name: str) -> str:
    return f"Hello, {name}!"


def register_resources(registry: ResourceRegistry) -> ResourceRegistry:
    registry.register(ResourceDescriptor(
        uri_template="greeting://{name}",
        name="greeting",
        title="Greeting Resource",
        description="Dynamic greeting generator",
        handler=greeting,
    ))
    return registry
