# Copyright (C) 2026 Linuxfabrik <info@linuxfabrik.ch>
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.
#
# On Debian systems, the complete text of the GNU General Public License
# version 2 can be found in /usr/share/common-licenses/GPL-2.
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""PolicyCompiler: turns the interface registry into a rule program.

The compiler runs a fixed sequence of passes, one per rule set.  Each
pass only *emits* rules, numbered from the band table in
``_numbering``; the processor pipeline then applies stealth responses,
verifies the numbering and puts the program in evaluation order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from trustfw.compiler._compiler import Compiler
from trustfw.compiler._comp_rule import (
    BROADCAST_ADDRESS,
    DHCP_PORTS,
    LOOPBACK_NETWORK,
    ME,
    MULTICAST_NETWORK,
    SSDP_ADDRESS,
    Action,
    Direction,
    Match,
    ResponseKind,
    endpoint,
)
from trustfw.compiler._numbering import (
    ICMP_IN_PIPE,
    ICMP_OUT_PIPE,
    KNOWN_NETWORK_EXIT,
    RST_DELAY_PIPE,
    SYN_PIPE,
    TOGGLEABLE_SETS,
    Purpose,
)
from trustfw.compiler._program import (
    CompiledPolicy,
    PipeConfig,
    RuleProgram,
    ServiceToggle,
    ShapingPlan,
)
from trustfw.compiler._shaping import ShapingAllocator
from trustfw.compiler.processors import (
    Begin,
    CheckRuleNumbers,
    SortByRuleNumber,
    StealthResponses,
    StoreRules,
)
from trustfw.core import RuleNumberingError

if TYPE_CHECKING:
    from trustfw.compiler._os_configurator import OSConfigurator
    from trustfw.core import InterfaceDescriptor, InterfaceRegistry
    from trustfw.core.options import CompilerOptions

P = Purpose

MDNS_SERVICE = 'mDNSResponder'

# Set 3: AFP, AirPort admin, UPnP discovery, Rendezvous
MAC_TCP_PORTS = ('548', '5009')
MAC_UDP_PORTS = ('192',)
MDNS_PORTS = ('5353',)
MDNS_GROUP = '224.0.0.251'

# Set 4: file sharing, direct-hosted SMB, SLP, UPnP
WINDOWS_TCP_PORTS = ('135-139', '445', '5000')
WINDOWS_UDP_PORTS = ('135-139', '427', '445', '1900')

BOOTSTRAP_ICMP_TYPES = (0, 3, 4, 11, 12, 13, 14)

# Set 11: web, ftp, ssh, vnc, im, irc, smtp, pop3(s), imap4(s)
OUTBOUND_TCP_PORTS = (
    '80', '443', '21', '22', '5900', '5222', '5190', '5050', '1863',
    '6667', '25', '26', '110', '995', '143', '993',
)  # fmt: skip
# openvpn, dns, ntp
OUTBOUND_UDP_PORTS = ('1194', '53', '123')

AUTH_PORTS = ('113',)
DNS_PORTS = ('53',)
ZERO_PORT = ('0',)

ZERONET = '0.0.0.0/8'
LINK_LOCAL_NETWORK = '169.254.0.0/16'

SPOOF_SOURCES = (
    (P.SPOOF_192, '192.168.0.0/16'),
    (P.SPOOF_172, '172.16.0.0/12'),
    (P.SPOOF_10, '10.0.0.0/8'),
    (P.SPOOF_LOOPBACK, LOOPBACK_NETWORK),
)

IP_OPTIONS = (
    (P.IPOPT_RR, 'rr'),
    (P.IPOPT_TS, 'ts'),
    (P.IPOPT_LSRR, 'lsrr'),
    (P.IPOPT_SSRR, 'ssrr'),
)

BASELINE_PIPES = (
    PipeConfig(SYN_PIPE, bandwidth='64Kbit/s', queue_slots=5),
    PipeConfig(RST_DELAY_PIPE, delay_ms=500),
    PipeConfig(ICMP_IN_PIPE, bandwidth='16Kbit/s', queue_slots=1),
    PipeConfig(ICMP_OUT_PIPE, bandwidth='16Kbit/s', queue_slots=5),
)


class PolicyCompiler(Compiler):
    """Compiles the interface registry and options into a CompiledPolicy."""

    def __init__(
        self,
        registry: InterfaceRegistry,
        options: CompilerOptions,
        os_configurator: OSConfigurator | None = None,
    ) -> None:
        super().__init__(registry, options)
        self.os_configurator = os_configurator
        self.shaping: ShapingPlan = ShapingPlan()
        self.service_actions: list[ServiceToggle] = []

        # All known interfaces, as a `via` alternative list
        self.via_all: tuple[str, ...] = registry.unique_names

    @property
    def log_all(self) -> bool:
        return self.options.log_all

    def build(self) -> CompiledPolicy:
        """Run the compiler and return the finished policy.

        Raises:
            RuleNumberingError: the program failed the numbering checks.
        """
        self.compile()

        if self.is_aborted() or self.get_errors():
            raise RuleNumberingError('; '.join(self.get_errors()))

        program = RuleProgram(
            rules=tuple(self.program_rules),
            pipes=BASELINE_PIPES + self.shaping.pipes,
            queues=self.shaping.queues,
            set_states=tuple((set_id, len(self.registry) > 0) for set_id in TOGGLEABLE_SETS),
        )
        sysctls = ()
        if self.os_configurator is not None:
            sysctls = self.os_configurator.kernel_settings(self.options)
        return CompiledPolicy(
            program=program,
            shaping=self.shaping,
            service_actions=tuple(self.service_actions),
            sysctls=tuple(sysctls),
            warnings=tuple(self.get_warnings()),
        )

    def compile(self) -> None:
        self.info(f' Compiling policy for {len(self.registry)} interface(s)')
        super().compile()

        self.compile_baseline()
        self.compile_routing()
        self.compile_state()
        self.compile_mac_services()
        self.compile_windows_services()
        self.compile_trusted()
        self.compile_bootstrap()
        self.compile_inbound_filter()
        self.shaping = ShapingAllocator(self).allocate()
        self.compile_outbound()
        self.compile_open_ports()
        self.compile_default_deny()

        self.add(Begin('Begin compilation'))
        self.add(StealthResponses('stealth responses'))
        self.add(CheckRuleNumbers('check rule numbers'))
        self.add(SortByRuleNumber('sort by rule number'))
        self.add(StoreRules('store rules'))
        self.run_rule_processors()

    # -- Set 0 --

    def compile_baseline(self) -> None:
        emit = self.emit

        emit(P.LOOPBACK, Action.ALLOW, Match(via=('lo*',)))

        router = self.options.router
        if router is not None:
            emit(P.NATD, Action.DIVERT, Match(via=(router.external_interface,)), target='natd')

        emit(
            P.SYN_LIMIT,
            Action.PIPE,
            Match(proto='tcp', direction=Direction.IN, setup=True),
            target=SYN_PIPE,
        )
        emit(
            P.RST_DELAY,
            Action.PIPE,
            Match(proto='tcp', direction=Direction.IN, tcpflags=('rst',)),
            target=RST_DELAY_PIPE,
        )
        emit(
            P.ICMP_IN_LIMIT,
            Action.PIPE,
            Match(proto='icmp', direction=Direction.IN),
            target=ICMP_IN_PIPE,
        )
        emit(
            P.ICMP_OUT_LIMIT,
            Action.PIPE,
            Match(proto='icmp', direction=Direction.OUT),
            target=ICMP_OUT_PIPE,
        )

        for purpose, option in IP_OPTIONS:
            emit(
                purpose,
                Action.DENY,
                Match(ipoptions=option, direction=Direction.IN, via=self.via_all),
                log=True,
            )

        emit(P.TCP_SYN_FIN, Action.DENY, Match(proto='tcp', tcpflags=('syn', 'fin')), log=True)
        emit(P.TCP_SYN_RST, Action.DENY, Match(proto='tcp', tcpflags=('syn', 'rst')), log=True)
        emit(P.TCP_SRC_PORT_0, Action.DENY, Match(proto='tcp', src=endpoint(ports=ZERO_PORT)), log=True)
        emit(P.TCP_DST_PORT_0, Action.DENY, Match(proto='tcp', dst=endpoint(ports=ZERO_PORT)), log=True)
        emit(P.UDP_SRC_PORT_0, Action.DENY, Match(proto='udp', src=endpoint(ports=ZERO_PORT)), log=True)
        emit(P.UDP_DST_PORT_0, Action.DENY, Match(proto='udp', dst=endpoint(ports=ZERO_PORT)), log=True)

    # -- Set 1 --

    def compile_routing(self) -> None:
        router = self.options.router
        if router is None:
            return
        emit = self.emit
        ext = router.external_interface
        client = router.client_interface
        client_net = endpoint(router.client_network)

        self.info(f' Routing {client} ({router.client_network}) over {ext}')

        emit(P.ROUTE_FROM_CLIENT, Action.ALLOW, Match(src=client_net, direction=Direction.IN, recv=client))
        emit(P.ROUTE_TO_CLIENT, Action.ALLOW, Match(dst=client_net, direction=Direction.IN, recv=ext))
        emit(P.FORWARD_FROM_CLIENT, Action.ALLOW, Match(src=client_net, direction=Direction.OUT, recv=client, xmit=ext))
        emit(P.FORWARD_TO_CLIENT, Action.ALLOW, Match(dst=client_net, direction=Direction.OUT, recv=ext, xmit=client))
        emit(
            P.CLIENT_TO_ROUTER,
            Action.ALLOW,
            Match(src=client_net, dst=endpoint(ME), direction=Direction.IN, recv=client),
        )
        emit(
            P.ROUTER_TO_CLIENT,
            Action.ALLOW,
            Match(src=endpoint(ME), dst=client_net, direction=Direction.OUT, xmit=client),
        )

    # -- Set 2 --

    def compile_state(self) -> None:
        self.emit(P.CHECK_STATE, Action.CHECK_STATE, Match())
        self.emit(P.DENY_FRAGMENTS, Action.DENY, Match(frag=True), log=self.log_all)
        self.emit(
            P.RESET_ESTABLISHED,
            Action.REJECT,
            Match(proto='tcp', established=True),
            log=self.log_all,
            response=ResponseKind.TCP_RESET,
        )

    # -- Sets 3 and 4 --

    def _service_descriptors(self, wanted, label: str) -> list[InterfaceDescriptor]:
        """Descriptors of one OS type that are bounded to a network."""
        result = []
        for d in self.registry:
            if not wanted(d):
                continue
            if not d.bounded:
                self.warning(
                    f'Interface {d.name} (index {d.index}) is marked +{label} '
                    f'but has no network; {label} services stay closed'
                )
                continue
            result.append(d)
        return result

    def _emit_broadcasts(self, d: InterfaceDescriptor, purposes) -> None:
        multicast, ssdp, broadcast = purposes
        net = endpoint(d.network)
        via = (d.name,)
        idx = d.index
        self.emit(
            multicast,
            Action.ALLOW,
            Match(src=net, dst=endpoint(MULTICAST_NETWORK), via=via, keep_state=True),
            index=idx,
            log=self.log_all,
        )
        self.emit(
            ssdp,
            Action.ALLOW,
            Match(proto='udp', src=net, dst=endpoint(SSDP_ADDRESS), via=via, keep_state=True),
            index=idx,
            log=self.log_all,
        )
        self.emit(
            broadcast,
            Action.ALLOW,
            Match(proto='udp', src=net, dst=endpoint(BROADCAST_ADDRESS), via=via, keep_state=True),
            index=idx,
            log=self.log_all,
        )

    def compile_mac_services(self) -> None:
        mac_registered = any(d.os_type.includes_mac for d in self.registry)

        for d in self._service_descriptors(lambda d: d.os_type.includes_mac, 'mac'):
            net = d.network
            via = (d.name,)
            self.emit(
                P.MAC_TCP,
                Action.ALLOW,
                Match(
                    proto='tcp',
                    src=endpoint(net),
                    dst=endpoint(net, ports=MAC_TCP_PORTS),
                    via=via,
                    setup=True,
                    keep_state=True,
                ),
                index=d.index,
                log=self.log_all,
            )
            self.emit(
                P.MAC_UDP,
                Action.ALLOW,
                Match(
                    proto='udp',
                    src=endpoint(net),
                    dst=endpoint(net, ports=MAC_UDP_PORTS),
                    via=via,
                    keep_state=True,
                ),
                index=d.index,
                log=self.log_all,
            )
            self.emit(
                P.MAC_MDNS,
                Action.ALLOW,
                Match(
                    proto='udp',
                    src=endpoint(net),
                    dst=endpoint(net, MDNS_GROUP, ports=MDNS_PORTS),
                    via=via,
                    keep_state=True,
                ),
                index=d.index,
                log=self.log_all,
            )
            self._emit_broadcasts(d, (P.MAC_MULTICAST, P.MAC_SSDP, P.MAC_BROADCAST))

        # No need to advertise services whose packets never leave the host.
        self.service_actions.append(ServiceToggle(MDNS_SERVICE, enable=mac_registered))

    def compile_windows_services(self) -> None:
        for d in self._service_descriptors(lambda d: d.os_type.includes_windows, 'win'):
            net = d.network
            via = (d.name,)
            self.emit(
                P.WIN_TCP,
                Action.ALLOW,
                Match(
                    proto='tcp',
                    src=endpoint(net),
                    dst=endpoint(net, ports=WINDOWS_TCP_PORTS),
                    via=via,
                    setup=True,
                    keep_state=True,
                ),
                index=d.index,
                log=self.log_all,
            )
            self.emit(
                P.WIN_UDP,
                Action.ALLOW,
                Match(
                    proto='udp',
                    src=endpoint(net),
                    dst=endpoint(net, ports=WINDOWS_UDP_PORTS),
                    via=via,
                    keep_state=True,
                ),
                index=d.index,
                log=self.log_all,
            )
            self._emit_broadcasts(d, (P.WIN_MULTICAST, P.WIN_SSDP, P.WIN_BROADCAST))

    # -- Set 5 --

    def compile_trusted(self) -> None:
        for d in self.registry:
            if not d.trusted:
                continue
            self.emit(
                P.TRUSTED_ICMP,
                Action.ALLOW,
                Match(proto='icmp', src=endpoint(d.network), dst=endpoint(d.network), via=(d.name,)),
                index=d.index,
                log=self.log_all,
            )

        not_dhcp = {'ports': DHCP_PORTS, 'ports_negate': True}
        for purpose, address in (
            (P.REJECT_MULTICAST, MULTICAST_NETWORK),
            (P.REJECT_SSDP, SSDP_ADDRESS),
            (P.REJECT_BROADCAST, BROADCAST_ADDRESS),
        ):
            self.emit(
                purpose,
                Action.REJECT,
                Match(dst=endpoint(address, **not_dhcp)),
                log=self.log_all,
                response=ResponseKind.HOST_PROHIBITED,
            )

        # Service ports of networks that did not qualify in sets 3 and 4
        self.emit(
            P.DENY_SERVICE_UDP,
            Action.DENY,
            Match(proto='udp', dst=endpoint(ports=MAC_UDP_PORTS + WINDOWS_UDP_PORTS)),
            log=self.log_all,
        )
        self.emit(
            P.REJECT_SERVICE_TCP,
            Action.REJECT,
            Match(proto='tcp', dst=endpoint(ports=MAC_TCP_PORTS + WINDOWS_TCP_PORTS)),
            log=self.log_all,
            response=ResponseKind.HOST_PROHIBITED,
        )

    # -- Set 6 --

    def compile_bootstrap(self) -> None:
        self.emit(
            P.BOOTSTRAP_ICMP,
            Action.ALLOW,
            Match(proto='icmp', icmptypes=BOOTSTRAP_ICMP_TYPES, via=self.via_all, keep_state=True),
            log=self.log_all,
        )
        self.emit(
            P.BOOTSTRAP_DHCP,
            Action.ALLOW,
            Match(
                proto='udp',
                src=endpoint(ports=DHCP_PORTS),
                dst=endpoint(ports=DHCP_PORTS),
                via=self.via_all,
                keep_state=True,
            ),
            log=self.log_all,
        )

    # -- Set 7 --

    def compile_inbound_filter(self) -> None:
        emit = self.emit
        inbound = {'direction': Direction.IN, 'via': self.via_all}

        emit(P.REVERSE_PATH, Action.DENY, Match(bad_reverse_path=True, **inbound), log=self.log_all)

        # Until a lease is granted we do not know our own address.
        emit(
            P.NOT_FOR_ME,
            Action.REJECT,
            Match(dst=endpoint(ME, negate=True, ports=DHCP_PORTS, ports_negate=True), **inbound),
            log=True,
            response=ResponseKind.HOST_PROHIBITED,
        )
        emit(
            P.NOT_FROM_ME,
            Action.REJECT,
            Match(src=endpoint(ME, negate=True), direction=Direction.OUT, via=self.via_all),
            log=True,
            response=ResponseKind.HOST_PROHIBITED,
        )

        for d in self.registry:
            if d.bounded:
                emit(
                    P.KNOWN_NETWORK,
                    Action.SKIPTO,
                    Match(src=endpoint(d.network), dst=endpoint(ME), direction=Direction.IN, via=(d.name,)),
                    index=d.index,
                    target=KNOWN_NETWORK_EXIT,
                )

        # Unbounded interfaces face the public network, trusted or not.
        public = self.registry.via_clause(lambda d: not d.bounded)
        if public:
            for purpose, source in SPOOF_SOURCES:
                emit(
                    purpose,
                    Action.DENY,
                    Match(src=endpoint(source), direction=Direction.IN, via=public),
                    log=True,
                )

        emit(
            P.REJECT_ZERONET,
            Action.REJECT,
            Match(src=endpoint(ZERONET), dst=endpoint(ports=DHCP_PORTS, ports_negate=True), direction=Direction.IN),
            log=self.log_all,
            response=ResponseKind.HOST_PROHIBITED,
        )
        emit(
            P.REJECT_LINK_LOCAL,
            Action.REJECT,
            Match(src=endpoint(LINK_LOCAL_NETWORK), direction=Direction.IN),
            log=self.log_all,
            response=ResponseKind.HOST_PROHIBITED,
        )
        emit(
            P.REJECT_CLASS_DE,
            Action.REJECT,
            Match(src=endpoint(MULTICAST_NETWORK), direction=Direction.IN),
            log=self.log_all,
            response=ResponseKind.HOST_PROHIBITED,
        )

        # Services such as IRC and SMTP query auth back; answer them.
        emit(
            P.AUTH_RESET,
            Action.REJECT,
            Match(proto='tcp', dst=endpoint(ME, ports=AUTH_PORTS), direction=Direction.IN, setup=True),
            log=self.log_all,
            response=ResponseKind.TCP_RESET,
        )

    # -- Set 11 --

    def compile_outbound(self) -> None:
        from_me = endpoint(ME)
        outbound = {'direction': Direction.OUT, 'via': self.via_all, 'keep_state': True}

        self.emit(
            P.OUT_KNOWN_TCP,
            Action.ALLOW,
            Match(proto='tcp', src=from_me, dst=endpoint(ports=OUTBOUND_TCP_PORTS), setup=True, **outbound),
            log=self.log_all,
        )
        self.emit(
            P.OUT_KNOWN_UDP,
            Action.ALLOW,
            Match(proto='udp', src=from_me, dst=endpoint(ports=OUTBOUND_UDP_PORTS), **outbound),
            log=self.log_all,
        )
        self.emit(
            P.OUT_OTHER_TCP,
            Action.ALLOW,
            Match(proto='tcp', src=from_me, setup=True, **outbound),
            log=True,
        )
        self.emit(P.OUT_OTHER_IP, Action.ALLOW, Match(src=from_me, **outbound), log=True)

    # -- Set 20 --

    def _open_ports(self, d: InterfaceDescriptor, purposes, tcp_ports, udp_ports) -> None:
        tcp_purpose, udp_purpose = purposes
        common = {
            'src': endpoint(d.network),
            'direction': Direction.IN,
            'via': (d.name,),
            'keep_state': True,
        }
        if tcp_ports:
            self.emit(
                tcp_purpose,
                Action.ALLOW,
                Match(proto='tcp', dst=endpoint(ME, ports=tcp_ports), setup=True, **common),
                index=d.index,
                log=self.log_all,
            )
        if udp_ports:
            self.emit(
                udp_purpose,
                Action.ALLOW,
                Match(proto='udp', dst=endpoint(ME, ports=udp_ports), **common),
                index=d.index,
                log=self.log_all,
            )

    def compile_open_ports(self) -> None:
        ports = self.options.ports
        for d in self.registry:
            if d.trusted:
                self._open_ports(d, (P.TRUSTED_TCP, P.TRUSTED_UDP), ports.trusted_tcp, ports.trusted_udp)
            if d.bounded or d.trusted:
                self._open_ports(d, (P.LOCAL_TCP, P.LOCAL_UDP), ports.local_tcp, ports.local_udp)
            self._open_ports(d, (P.PUBLIC_TCP, P.PUBLIC_UDP), ports.public_tcp, ports.public_udp)

    # -- Set 30 --

    def compile_default_deny(self) -> None:
        emit = self.emit
        inbound = {'direction': Direction.IN, 'via': self.via_all}
        host = ResponseKind.HOST_PROHIBITED
        filtered = ResponseKind.FILTER_PROHIBITED

        emit(
            P.REJECT_DNS_FROM,
            Action.REJECT,
            Match(proto='udp', src=endpoint(ports=DNS_PORTS), **inbound),
            log=self.log_all,
            response=host,
        )
        emit(
            P.REJECT_DNS_TO,
            Action.REJECT,
            Match(proto='udp', dst=endpoint(ports=DNS_PORTS), **inbound),
            log=self.log_all,
            response=host,
        )
        emit(P.REJECT_IN_UDP, Action.REJECT, Match(proto='udp', **inbound), log=self.log_all, response=filtered)
        emit(P.REJECT_IN_TCP, Action.REJECT, Match(proto='tcp', **inbound), log=True, response=filtered)
        emit(P.REJECT_IN, Action.REJECT, Match(**inbound), log=self.log_all, response=filtered)
        emit(
            P.REJECT_OUT,
            Action.REJECT,
            Match(direction=Direction.OUT, via=self.via_all),
            log=True,
            response=filtered,
        )
        emit(P.REJECT_ALL, Action.REJECT, Match(), log=self.log_all, response=filtered)
