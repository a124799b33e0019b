from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RemoteObject(BaseModel):
	"""Runtime.RemoteObject as delivered in console event arguments."""

	model_config = ConfigDict(extra='ignore', populate_by_name=True)

	type: str = 'undefined'
	subtype: str | None = None
	class_name: str | None = Field(default=None, alias='className')
	value: Any = None
	unserializable_value: str | None = Field(default=None, alias='unserializableValue')
	description: str | None = None
	object_id: str | None = Field(default=None, alias='objectId')

	@property
	def has_value(self) -> bool:
		# `value: null` is a literal, a missing `value` is not
		return 'value' in self.model_fields_set


class ConsoleAPICalledEvent(BaseModel):
	"""Params of the Runtime.consoleAPICalled event."""

	model_config = ConfigDict(extra='ignore', populate_by_name=True)

	type: str
	args: list[RemoteObject] = Field(default_factory=list)
	execution_context_id: int | None = Field(default=None, alias='executionContextId')
	timestamp: float | None = None
