from __future__ import annotations

import hashlib
import uuid

# Project-type GUID Visual Studio expects for a C# class library.
CSHARP_PROJECT_TYPE_GUID = "FAE04EC0-301F-11D3-BF4B-00C04F79EFBC"
PROJECT_GUID_SALT = "salt"


def identity(*components: str) -> str:
    digest = hashlib.md5("".join(components).encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest)).upper()


def guid_for_project(project_name: str, assembly_name: str) -> str:
    return identity(project_name, assembly_name, PROJECT_GUID_SALT)


def guid_for_solution(project_name: str, source_extension: str) -> str:
    if source_extension.lstrip(".").lower() == "cs":
        return CSHARP_PROJECT_TYPE_GUID
    return identity(project_name)
