from __future__ import annotations

from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError


class CloudFrontStub:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.invalidations: List[Dict[str, Any]] = []

    def create_invalidation(self, **kwargs: Any) -> Dict[str, Any]:
        if self.fail:
            raise ClientError(
                {"Error": {"Code": "NoSuchDistribution", "Message": "The specified distribution does not exist."}},
                "CreateInvalidation",
            )
        self.invalidations.append(kwargs)
        return {"Invalidation": {"Id": "I2J0I21PCUYOIK", "Status": "InProgress"}}


class CodePipelineStub:
    def __init__(self) -> None:
        self.successes: List[Dict[str, Any]] = []
        self.failures: List[Dict[str, Any]] = []

    def put_job_success_result(self, **kwargs: Any) -> Dict[str, Any]:
        self.successes.append(kwargs)
        return {}

    def put_job_failure_result(self, **kwargs: Any) -> Dict[str, Any]:
        self.failures.append(kwargs)
        return {}


class SsmStub:
    def __init__(self, parameters: Optional[Dict[str, str]] = None) -> None:
        self.parameters = dict(parameters or {})
        self.requests: List[Dict[str, Any]] = []

    def get_parameter(self, **kwargs: Any) -> Dict[str, Any]:
        self.requests.append(kwargs)
        name = kwargs["Name"]
        if name not in self.parameters:
            raise ClientError({"Error": {"Code": "ParameterNotFound", "Message": name}}, "GetParameter")
        return {"Parameter": {"Name": name, "Type": "SecureString", "Value": self.parameters[name]}}


class BotoStub:
    def __init__(
        self,
        *,
        cloudfront: Optional[Any] = None,
        codepipeline: Optional[Any] = None,
        ssm: Optional[Any] = None,
    ) -> None:
        self._cloudfront = cloudfront
        self._codepipeline = codepipeline
        self._ssm = ssm

    def client(self, name: str, **kwargs: Any) -> Any:
        if name == "cloudfront" and self._cloudfront is not None:
            return self._cloudfront
        if name == "codepipeline" and self._codepipeline is not None:
            return self._codepipeline
        if name == "ssm" and self._ssm is not None:
            return self._ssm

        # Provide minimal stub for unknown client names
        class _Stub:
            pass

        return _Stub()
