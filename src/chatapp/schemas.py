# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# All fields optional: a missing field is a 400 raised by the auth service,
# with the same message the frontend already shows.


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RegisterIn(_Body):
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    username: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = Field(default=None, alias="passwordConfirmation")
    email: Optional[str] = None


class LoginIn(_Body):
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateIn(_Body):
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    username: Optional[str] = None
    email: Optional[str] = None
