"""
Demo tools: numeric addition and city weather lookup.
"""

from typing import Annotated, Callable, Awaitable

from pydantic import BaseModel, Field

from demo_mcp.base import ToolDescriptor
from demo_mcp.registry import ToolRegistry
from demo_mcp.weather import WeatherClient


class AddResult(BaseModel):
    result: float


async def add(a: float, b: float) -> AddResult:
    """Add two numbers."""
    return AddResult(result=a + b)


def make_get_weather(weather_client: WeatherClient) -> Callable[[str], Awaitable[str]]:
    """
    Build the getWeather handler around a weather client.

    The handler returns plain text; the engine wraps it as ``{"result": text}``
    for the structured result and uses the text itself as the content block.
    Upstream failures are left to propagate to the engine.
    """

    async def get_weather(
        city: Annotated[str, Field(description="The name of the city to get the weather for")],
    ) -> str:
        return await weather_client.describe_city(city)

    return get_weather


def register_tools(registry: ToolRegistry, weather_client: WeatherClient) -> ToolRegistry:
    registry.register(ToolDescriptor(
        name="add",
        title="Addition Tool",
        description="Add two numbers",
        handler=add,
    ))
    registry.register(ToolDescriptor(
        name="getWeather",
        title="Get weather tool",
        description="Tool to get the weather for a city",
        handler=make_get_weather(weather_client),
    ))
    return registry
