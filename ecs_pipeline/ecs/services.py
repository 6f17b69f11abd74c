"""Long-running services, the public load balancer and their scaling policies."""

from __future__ import annotations

from typing import List, Optional

from aws_cdk import (
    CfnOutput,
    Duration,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
)
from constructs import Construct

from ecs_pipeline.config.settings import (
    DEFAULT_STICKINESS_SECONDS,
    MAX_QUEUE_TASKS,
    MAX_WEB_TASKS,
    PlainRouting,
    Routing,
    TlsRouting,
)

HEALTH_CHECK_PATH = "/health.html"
HEALTHY_HTTP_CODES = "200-299,403"
LOAD_BALANCER_IDLE_TIMEOUT = Duration.seconds(300)
SCALING_COOLDOWN = Duration.seconds(60)

WEB_TARGET_UTILIZATION = 65
QUEUE_TARGET_UTILIZATION = 75


class ServicesConstruct(Construct):
    """Provision the web and queue services.

    The web service sits behind an internet-facing ALB. With ``TlsRouting``
    an HTTPS listener on 443 and an HTTP listener on 80 both forward to the
    same target group (plain pass-through, not a redirect); with
    ``PlainRouting`` a single HTTP listener on 80 is created. The queue
    service has no public routing.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        cluster: ecs.ICluster,
        vpc: ec2.IVpc,
        web_task_definition: ecs.Ec2TaskDefinition,
        queue_task_definition: ecs.Ec2TaskDefinition,
        routing: Routing = PlainRouting(),
        min_desired_web_tasks: int = 1,
        min_desired_queue_tasks: int = 1,
        stickiness_cookie_duration: Optional[Duration] = None,
    ) -> None:
        super().__init__(scope, construct_id)
        stickiness_cookie_duration = stickiness_cookie_duration or Duration.seconds(DEFAULT_STICKINESS_SECONDS)

        self.web_service = ecs.Ec2Service(
            self,
            "WebService",
            cluster=cluster,
            task_definition=web_task_definition,
            desired_count=min_desired_web_tasks,
        )

        self.load_balancer_security_group = ec2.SecurityGroup(self, "LoadBalancerSecurityGroup", vpc=vpc)
        self.load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            "LoadBalancer",
            vpc=vpc,
            internet_facing=True,
            idle_timeout=LOAD_BALANCER_IDLE_TIMEOUT,
            security_group=self.load_balancer_security_group,
        )

        self.target_group = self._create_target_group(vpc, routing, stickiness_cookie_duration)
        self.listeners = self._create_listeners(routing)
        self.listeners[0].add_target_groups(
            "DefaultPathTargetGroup",
            target_groups=[self.target_group],
            priority=1,
            conditions=[elbv2.ListenerCondition.path_patterns(["/"])],
        )

        self.web_scaling = self._autoscale(
            self.web_service,
            "Web",
            min_capacity=min_desired_web_tasks,
            max_capacity=MAX_WEB_TASKS,
            target_percent=WEB_TARGET_UTILIZATION,
        )

        self.queue_service = ecs.Ec2Service(
            self,
            "QueueService",
            cluster=cluster,
            task_definition=queue_task_definition,
            desired_count=min_desired_queue_tasks,
        )
        self.queue_scaling = self._autoscale(
            self.queue_service,
            "Queue",
            min_capacity=min_desired_queue_tasks,
            max_capacity=MAX_QUEUE_TASKS,
            target_percent=QUEUE_TARGET_UTILIZATION,
        )

        CfnOutput(self, "LoadBalancerDNS", value=self.load_balancer.load_balancer_dns_name)

    def _create_target_group(
        self,
        vpc: ec2.IVpc,
        routing: Routing,
        stickiness_cookie_duration: Duration,
    ) -> elbv2.ApplicationTargetGroup:
        if isinstance(routing, TlsRouting):
            protocol, port = elbv2.ApplicationProtocol.HTTPS, 443
        else:
            protocol, port = elbv2.ApplicationProtocol.HTTP, 80

        return elbv2.ApplicationTargetGroup(
            self,
            "WebTargetGroup",
            vpc=vpc,
            protocol=protocol,
            port=port,
            targets=[self.web_service],
            stickiness_cookie_duration=stickiness_cookie_duration,
            health_check=elbv2.HealthCheck(
                interval=Duration.seconds(60),
                path=HEALTH_CHECK_PATH,
                healthy_http_codes=HEALTHY_HTTP_CODES,
            ),
        )

    def _create_listeners(self, routing: Routing) -> List[elbv2.ApplicationListener]:
        listeners: List[elbv2.ApplicationListener] = []
        if isinstance(routing, TlsRouting):
            listeners.append(
                self.load_balancer.add_listener(
                    "HttpsListener",
                    protocol=elbv2.ApplicationProtocol.HTTPS,
                    port=443,
                    open=True,
                    certificates=[elbv2.ListenerCertificate.from_arn(arn) for arn in routing.certificate_arns],
                    default_target_groups=[self.target_group],
                )
            )

        listeners.append(
            self.load_balancer.add_listener(
                "HttpListener",
                protocol=elbv2.ApplicationProtocol.HTTP,
                port=80,
                open=True,
                default_target_groups=[self.target_group],
            )
        )
        return listeners

    def _autoscale(
        self,
        service: ecs.Ec2Service,
        name: str,
        *,
        min_capacity: int,
        max_capacity: int,
        target_percent: int,
    ) -> ecs.ScalableTaskCount:
        scaling = service.auto_scale_task_count(min_capacity=min_capacity, max_capacity=max_capacity)
        scaling.scale_on_cpu_utilization(
            f"Cpu{name}Scaling",
            target_utilization_percent=target_percent,
            scale_in_cooldown=SCALING_COOLDOWN,
            scale_out_cooldown=SCALING_COOLDOWN,
        )
        scaling.scale_on_memory_utilization(
            f"Memory{name}Scaling",
            target_utilization_percent=target_percent,
            scale_in_cooldown=SCALING_COOLDOWN,
            scale_out_cooldown=SCALING_COOLDOWN,
        )
        return scaling
