"""Optional CodePipeline resources that build the service from GitHub.

Independent of the log forwarding resources: nothing here references the
permission or the subscription filters, and they never reference these.
"""

from __future__ import annotations

from .config import CicdSettings
from .resources import ResourceDeclaration
from .service import ServiceConfig

ARTIFACT_BUCKET_LOGICAL_ID = "CicdArtifactBucket"
ROLE_LOGICAL_ID = "CicdRole"
BUILD_PROJECT_LOGICAL_ID = "CicdBuildProject"
PIPELINE_LOGICAL_ID = "CicdPipeline"

SOURCE_ARTIFACT = "SourceOutput"


def _role_declaration(service_name: str) -> ResourceDeclaration:
    return ResourceDeclaration(
        type="AWS::IAM::Role",
        properties={
            "RoleName": f"{service_name}-cicd",
            "AssumeRolePolicyDocument": {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {
                            "Service": [
                                "codebuild.amazonaws.com",
                                "codepipeline.amazonaws.com",
                            ]
                        },
                        "Action": "sts:AssumeRole",
                    }
                ],
            },
            "Policies": [
                {
                    "PolicyName": f"{service_name}-cicd",
                    "PolicyDocument": {
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Action": [
                                    "logs:CreateLogGroup",
                                    "logs:CreateLogStream",
                                    "logs:PutLogEvents",
                                ],
                                "Resource": "*",
                            },
                            {
                                "Effect": "Allow",
                                "Action": ["s3:GetObject", "s3:GetObjectVersion", "s3:PutObject"],
                                "Resource": {
                                    "Fn::Sub": f"${{{ARTIFACT_BUCKET_LOGICAL_ID}.Arn}}/*"
                                },
                            },
                            {
                                "Effect": "Allow",
                                "Action": ["codebuild:StartBuild", "codebuild:BatchGetBuilds"],
                                # Not GetAtt: the project already depends on this role
                                "Resource": {
                                    "Fn::Sub": (
                                        "arn:${AWS::Partition}:codebuild:${AWS::Region}:"
                                        f"${{AWS::AccountId}}:project/{service_name}-build"
                                    )
                                },
                            },
                            {
                                "Effect": "Allow",
                                "Action": [
                                    "cloudformation:*",
                                    "lambda:*",
                                    "iam:PassRole",
                                ],
                                "Resource": "*",
                            },
                        ],
                    },
                }
            ],
        },
        depends_on=(ARTIFACT_BUCKET_LOGICAL_ID,),
    )


def _build_project_declaration(
    service_name: str, stage: str, settings: CicdSettings
) -> ResourceDeclaration:
    return ResourceDeclaration(
        type="AWS::CodeBuild::Project",
        properties={
            "Name": f"{service_name}-build",
            "ServiceRole": {"Fn::GetAtt": [ROLE_LOGICAL_ID, "Arn"]},
            "Source": {"Type": "CODEPIPELINE"},
            "Artifacts": {"Type": "CODEPIPELINE"},
            "Environment": {
                "Type": "LINUX_CONTAINER",
                "ComputeType": "BUILD_GENERAL1_SMALL",
                "Image": settings.image,
                "EnvironmentVariables": [{"Name": "STAGE", "Value": stage}],
            },
        },
        depends_on=(ROLE_LOGICAL_ID,),
    )


def _pipeline_declaration(service_name: str, settings: CicdSettings) -> ResourceDeclaration:
    return ResourceDeclaration(
        type="AWS::CodePipeline::Pipeline",
        properties={
            "Name": f"{service_name}-pipeline",
            "RoleArn": {"Fn::GetAtt": [ROLE_LOGICAL_ID, "Arn"]},
            "ArtifactStore": {"Type": "S3", "Location": {"Ref": ARTIFACT_BUCKET_LOGICAL_ID}},
            "Stages": [
                {
                    "Name": "Source",
                    "Actions": [
                        {
                            "Name": "Source",
                            "ActionTypeId": {
                                "Category": "Source",
                                "Owner": "ThirdParty",
                                "Provider": "GitHub",
                                "Version": "1",
                            },
                            "Configuration": {
                                "Owner": settings.owner,
                                "Repo": settings.repository,
                                "Branch": settings.branch,
                                "OAuthToken": settings.token,
                                "PollForSourceChanges": False,
                            },
                            "OutputArtifacts": [{"Name": SOURCE_ARTIFACT}],
                            "RunOrder": 1,
                        }
                    ],
                },
                {
                    "Name": "Build",
                    "Actions": [
                        {
                            "Name": "Build",
                            "ActionTypeId": {
                                "Category": "Build",
                                "Owner": "AWS",
                                "Provider": "CodeBuild",
                                "Version": "1",
                            },
                            "Configuration": {"ProjectName": {"Ref": BUILD_PROJECT_LOGICAL_ID}},
                            "InputArtifacts": [{"Name": SOURCE_ARTIFACT}],
                            "RunOrder": 1,
                        }
                    ],
                },
            ],
        },
        depends_on=(ROLE_LOGICAL_ID, BUILD_PROJECT_LOGICAL_ID),
    )


def build_cicd_resources(
    service: ServiceConfig,
    stage: str,
    settings: CicdSettings,
) -> dict[str, ResourceDeclaration]:
    """Build the artifact bucket, role, CodeBuild project and two-stage pipeline.

    Args:
        service: The host's service manifest (read only)
        stage: Active stage, used in resource names
        settings: Output of :func:`~sls_splunk.config.resolve_cicd_settings`

    Returns:
        Mapping of logical ID to declaration
    """
    service_name = f"{service.service}-{stage}"
    return {
        ARTIFACT_BUCKET_LOGICAL_ID: ResourceDeclaration(type="AWS::S3::Bucket"),
        ROLE_LOGICAL_ID: _role_declaration(service_name),
        BUILD_PROJECT_LOGICAL_ID: _build_project_declaration(service_name, stage, settings),
        PIPELINE_LOGICAL_ID: _pipeline_declaration(service_name, settings),
    }
