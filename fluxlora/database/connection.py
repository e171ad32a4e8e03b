"""
DynamoDB connection and table bootstrap
"""
import logging
import boto3
from botocore.exceptions import ClientError
from fluxlora.config.settings import Settings

logger = logging.getLogger(__name__)

USER_ID_INDEX = "UserIdIndex"
MODEL_ID_INDEX = "ModelIdIndex"


def create_resource(settings: Settings):
    """Create the boto3 DynamoDB resource"""
    return boto3.resource(
        "dynamodb",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION,
        endpoint_url=settings.DYNAMODB_ENDPOINT_URL
    )


def _index(name: str, attribute: str) -> dict:
    return {
        "IndexName": name,
        "KeySchema": [{"AttributeName": attribute, "KeyType": "HASH"}],
        "Projection": {"ProjectionType": "ALL"},
    }


def table_definitions(settings: Settings) -> list:
    """Table layouts: every table is keyed by `id`, owned tables carry secondary indexes"""
    return [
        {"name": settings.accounts_table, "indexes": []},
        {"name": settings.models_table, "indexes": [("userId", USER_ID_INDEX)]},
        {"name": settings.training_images_table, "indexes": [("modelId", MODEL_ID_INDEX), ("userId", USER_ID_INDEX)]},
        {"name": settings.generated_images_table, "indexes": [("userId", USER_ID_INDEX)]},
    ]


def create_tables(resource, settings: Settings):
    """Create all tables that do not exist yet"""
    existing = set(resource.meta.client.list_tables().get("TableNames", []))
    for definition in table_definitions(settings):
        name = definition["name"]
        if name in existing:
            continue
        attributes = [{"AttributeName": "id", "AttributeType": "S"}]
        attributes += [{"AttributeName": attr, "AttributeType": "S"} for attr, _ in definition["indexes"]]
        params = {
            "TableName": name,
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "AttributeDefinitions": attributes,
            "BillingMode": "PAY_PER_REQUEST",
        }
        if definition["indexes"]:
            params["GlobalSecondaryIndexes"] = [_index(index, attr) for attr, index in definition["indexes"]]
        try:
            table = resource.create_table(**params)
            table.wait_until_exists()
            logger.info(f"Created table {name}")
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise
