"""
sizing/catalog.py - 리소스 타입 카탈로그

프로바이더별로 카운팅할 리소스 타입을 정의합니다.
카탈로그 순서는 리포트 출력 순서의 기준이므로 임의로 바꾸지 않습니다.

Usage:
    from sizing.catalog import list_resource_types, filter_resource_types

    catalog = list_resource_types("aws")
    catalog = filter_resource_types(catalog, ["ec2:instance", "s3:bucket"])
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .exceptions import ConfigError
from .models import QueryStrategy, ResourceTypeDefinition

_D = QueryStrategy.DIRECT
_B = QueryStrategy.BATCHED


def _aws(type_key: str, display_name: str, category: str) -> ResourceTypeDefinition:
    return ResourceTypeDefinition(type_key, display_name, category, _D)


def _azure(type_key: str, display_name: str, category: str) -> ResourceTypeDefinition:
    return ResourceTypeDefinition(type_key, display_name, category, _B)


# =============================================================================
# AWS - Resource Groups Tagging API 리소스 타입 필터 (리전별 Direct 조회)
# =============================================================================

AWS_RESOURCE_TYPES: tuple[ResourceTypeDefinition, ...] = (
    # Compute
    _aws("ec2:instance", "EC2 Instances", "Compute"),
    _aws("lambda:function", "Lambda Functions", "Compute"),
    _aws("ecs:cluster", "ECS Clusters", "Containers"),
    _aws("ecs:service", "ECS Services", "Containers"),
    _aws("autoscaling:autoScalingGroup", "Auto Scaling Groups", "Compute"),
    _aws("lightsail:instance", "Lightsail Instances", "Compute"),
    _aws("eks:cluster", "EKS Clusters", "Containers"),
    # Messaging
    _aws("sqs:queue", "SQS Queues", "Messaging"),
    _aws("sns:topic", "SNS Topics", "Messaging"),
    # Analytics
    _aws("kinesis:stream", "Kinesis Streams", "Analytics"),
    _aws("firehose:deliverystream", "Kinesis Firehose Delivery Streams", "Analytics"),
    # Monitoring
    _aws("cloudwatch:alarm", "CloudWatch Alarms", "Monitoring"),
    # IAM
    _aws("iam:user", "IAM Users", "IAM"),
    _aws("iam:role", "IAM Roles", "IAM"),
    _aws("iam:group", "IAM Groups", "IAM"),
    _aws("iam:policy", "IAM Policies", "IAM"),
    # Application Integration
    _aws("states:stateMachine", "Step Functions State Machines", "Application Integration"),
    # Developer Tools
    _aws("codecommit:repository", "CodeCommit Repositories", "Developer Tools"),
    _aws("codebuild:project", "CodeBuild Projects", "Developer Tools"),
    _aws("codedeploy:application", "CodeDeploy Applications", "Developer Tools"),
    _aws("codepipeline:pipeline", "CodePipeline Pipelines", "Developer Tools"),
    # Machine Learning
    _aws("sagemaker:notebook-instance", "SageMaker Notebook Instances", "Machine Learning"),
    _aws("sagemaker:endpoint", "SageMaker Endpoints", "Machine Learning"),
    # Storage / Databases
    _aws("s3:bucket", "S3 Buckets", "Storage"),
    _aws("rds:db", "RDS Databases", "Databases"),
    _aws("dynamodb:table", "DynamoDB Tables", "Databases"),
    _aws("ec2:volume", "EBS Volumes", "Storage"),
    _aws("elasticfilesystem:file-system", "EFS File Systems", "Storage"),
    _aws("backup:backup-vault", "Backup Vaults", "Storage"),
    _aws("elasticache:cluster", "ElastiCache Clusters", "Databases"),
    _aws("redshift:cluster", "Redshift Clusters", "Databases"),
    _aws("rds:cluster", "Aurora/Neptune Clusters", "Databases"),
    # Networking & Content Delivery
    _aws("cloudfront:distribution", "CloudFront Distributions", "Networking"),
    _aws("route53:hostedzone", "Route 53 Hosted Zones", "Networking"),
    _aws("apigateway:restapis", "API Gateway REST APIs", "Networking"),
    _aws("apigateway:apis", "API Gateway HTTP/WebSocket APIs", "Networking"),
    _aws("directconnect:dxcon", "Direct Connect Connections", "Networking"),
    _aws("ec2:vpn-connection", "VPN Connections", "Networking"),
    # Migration & Transfer
    _aws("dms:rep", "DMS Replication Instances", "Migration & Transfer"),
    # Business Applications
    _aws("workspaces:workspace", "WorkSpaces", "Business Applications"),
    # Networking
    _aws("ec2:vpc", "VPCs", "Networking"),
    _aws("elasticloadbalancing:loadbalancer", "Load Balancers", "Networking"),
    _aws("ec2:natgateway", "NAT Gateways", "Networking"),
    _aws("ec2:internet-gateway", "Internet Gateways", "Networking"),
    _aws("ec2:security-group", "Security Groups", "Networking"),
    # Security
    _aws("kms:key", "KMS Keys", "Security"),
    _aws("secretsmanager:secret", "Secrets Manager Secrets", "Security"),
    _aws("acm:certificate", "ACM Certificates", "Security"),
    _aws("cloudhsm:cluster", "CloudHSM Clusters", "Security"),
)


# =============================================================================
# Azure - Resource Graph 리소스 타입 (구독 전체 Batched 조회)
# =============================================================================

AZURE_RESOURCE_TYPES: tuple[ResourceTypeDefinition, ...] = (
    _azure("microsoft.containerservice/managedclusters", "AKS Clusters", "Containers"),
    _azure("microsoft.apimanagement/service", "API Management", "Developer Tools"),
    _azure("microsoft.web/sites", "App Services", "Compute"),
    _azure("microsoft.network/applicationgateways", "Application Gateways", "Networking"),
    _azure("microsoft.insights/components", "Application Insights", "Analytics"),
    _azure("microsoft.automation/automationaccounts", "Automation Accounts", "Developer Tools"),
    _azure("microsoft.network/azurefirewalls", "Azure Firewalls", "Networking"),
    _azure("microsoft.recoveryservices/vaults/backuppolicies", "Backup Policies", "Storage"),
    _azure("microsoft.network/bastionhosts", "Bastion Hosts", "Networking"),
    _azure("microsoft.cognitiveservices/accounts", "Cognitive Services", "Machine Learning"),
    _azure("microsoft.network/connections", "Connections", "Networking"),
    _azure("microsoft.containerinstance/containergroups", "Container Instances", "Containers"),
    _azure("microsoft.containerregistry/registries", "Container Registries", "Containers"),
    _azure("microsoft.documentdb/databaseaccounts", "CosmosDB Accounts", "Databases"),
    _azure("microsoft.datafactory/factories", "Data Factories", "Analytics"),
    _azure("microsoft.datalakestore/accounts", "Data Lake Store Accounts", "Storage"),
    _azure("microsoft.visualstudio/account/project", "DevOps Projects", "Developer Tools"),
    _azure("microsoft.eventgrid/topics", "Event Grid Topics", "Developer Tools"),
    _azure("microsoft.eventhub/namespaces", "Event Hub Namespaces", "Analytics"),
    _azure("microsoft.hdinsight/clusters", "HDInsight Clusters", "Analytics"),
    _azure("microsoft.keyvault/vaults", "Key Vaults", "Security"),
    _azure("microsoft.network/loadbalancers", "Load Balancers", "Networking"),
    _azure("microsoft.network/localnetworkgateways", "Local Network Gateways", "Networking"),
    _azure("microsoft.machinelearningservices/workspaces", "Machine Learning Workspaces", "Machine Learning"),
    _azure("microsoft.cache/redisenterprise", "Managed Redis Cache", "Databases"),
    _azure("microsoft.dbformariadb/servers", "MariaDB Servers", "Databases"),
    _azure("microsoft.dbformysql/flexibleservers", "MySQL Servers", "Databases"),
    _azure("microsoft.network/networkinterfaces", "Network Interfaces", "Networking"),
    _azure("microsoft.network/networkwatchers", "Network Watchers", "Networking"),
    _azure("microsoft.dbforpostgresql/flexibleservers", "PostgreSQL Servers", "Databases"),
    _azure("microsoft.network/privateendpoints", "Private Endpoints", "Networking"),
    _azure("microsoft.network/publicipaddresses", "Public IP Addresses", "Networking"),
    _azure("microsoft.recoveryservices/vaults", "Recovery Services Vaults", "Storage"),
    _azure("microsoft.cache/redis", "Redis Cache", "Databases"),
    _azure("microsoft.network/routetables", "Route Tables", "Networking"),
    _azure("microsoft.sql/servers/databases", "SQL Databases", "Databases"),
    _azure("microsoft.sql/servers", "SQL Servers", "Databases"),
    _azure("microsoft.storage/storageaccounts", "Storage Accounts", "Storage"),
    _azure("microsoft.compute/virtualmachines", "Virtual Machines", "Compute"),
    _azure("microsoft.network/virtualnetworks", "Virtual Networks", "Networking"),
    _azure("microsoft.network/networksecuritygroups", "Network Security Groups", "Networking"),
    _azure("microsoft.network/vpngateways", "VPN Gateways", "Networking"),
)

_CATALOGS: dict[str, tuple[ResourceTypeDefinition, ...]] = {
    "aws": AWS_RESOURCE_TYPES,
    "azure": AZURE_RESOURCE_TYPES,
}


def list_resource_types(provider: str) -> tuple[ResourceTypeDefinition, ...]:
    """프로바이더의 카탈로그 반환 (프로세스 전역 상수, 읽기 전용)

    Raises:
        ConfigError: 지원하지 않는 프로바이더
    """
    key = provider.strip().lower()
    if key not in _CATALOGS:
        raise ConfigError("provider", f"지원하지 않는 프로바이더입니다: {provider}")
    return _CATALOGS[key]


def filter_resource_types(
    catalog: Sequence[ResourceTypeDefinition],
    type_keys: Iterable[str] | None,
) -> tuple[ResourceTypeDefinition, ...]:
    """지정한 타입만 남긴 카탈로그 반환 (카탈로그 순서 유지)

    Args:
        catalog: 원본 카탈로그
        type_keys: 남길 타입 키 (None 또는 빈 목록이면 전체)

    Raises:
        ConfigError: 카탈로그에 없는 타입 키
    """
    wanted = {k.strip().lower() for k in (type_keys or []) if k.strip()}
    if not wanted:
        return tuple(catalog)

    known = {d.type_key.lower() for d in catalog}
    unknown = sorted(wanted - known)
    if unknown:
        raise ConfigError("resources", f"카탈로그에 없는 리소스 타입: {', '.join(unknown)}")

    return tuple(d for d in catalog if d.type_key.lower() in wanted)


def get_categories(catalog: Sequence[ResourceTypeDefinition]) -> list[str]:
    """카탈로그에 등장한 카테고리 (첫 등장 순서)"""
    seen: dict[str, None] = {}
    for definition in catalog:
        seen.setdefault(definition.category, None)
    return list(seen)
