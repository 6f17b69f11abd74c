import pytest

from ecs_pipeline.core.iam import utils


def test_dedupe_preserves_order_and_drops_blanks() -> None:
    assert utils.dedupe(["b", "a", "", "b", " a "]) == ["b", "a"]


def test_bucket_arns() -> None:
    assert utils.bucket_arn("shop-artifacts") == "arn:aws:s3:::shop-artifacts"
    assert utils.bucket_objects_arn("shop-artifacts") == "arn:aws:s3:::shop-artifacts/*"
    assert utils.bucket_objects_arn("shop-artifacts", "keys/") == "arn:aws:s3:::shop-artifacts/keys/*"

    with pytest.raises(ValueError):
        utils.bucket_arn(" ")


def test_parameter_arns_normalize_leading_slash() -> None:
    assert utils.ssm_parameter_arn("app/slack/1") == "arn:aws:ssm:*:*:parameter/app/slack/1"
    assert utils.ssm_parameter_tree_arns("/shop/dev/") == [
        "arn:aws:ssm:*:*:parameter/shop/dev",
        "arn:aws:ssm:*:*:parameter/shop/dev/*",
    ]


def test_ecr_repository_arn() -> None:
    assert (
        utils.ecr_repository_arn("us-east-1", "111122223333", "shop-dev-1")
        == "arn:aws:ecr:us-east-1:111122223333:repository/shop-dev-1"
    )
