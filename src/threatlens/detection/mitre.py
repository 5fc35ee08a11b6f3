"""
MITRE ATT&CK reference table.

Static id -> technique metadata for the techniques the detection rules
map to. Rules take their name/tactic strings from here; nothing validates
threat ids against the table.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel


class MitreTechnique(BaseModel):
    """Reference entry for one ATT&CK technique."""

    id: str
    name: str
    tactic: str
    description: str
    severity: str = "medium"
    url: str

    class Config:
        frozen = True


_TECHNIQUES = [
    MitreTechnique(
        id="T1110",
        name="Brute Force",
        tactic="Credential Access",
        description="Adversaries may use brute force techniques to gain access to accounts "
        "when passwords are unknown or when password hashes are obtained.",
        severity="critical",
        url="https://attack.mitre.org/techniques/T1110/",
    ),
    MitreTechnique(
        id="T1110.001",
        name="Password Guessing",
        tactic="Credential Access",
        description="Adversaries with no prior knowledge of legitimate credentials may guess "
        "passwords to attempt access to accounts.",
        severity="high",
        url="https://attack.mitre.org/techniques/T1110/001/",
    ),
    MitreTechnique(
        id="T1110.003",
        name="Password Spraying",
        tactic="Credential Access",
        description="Adversaries may use a single or small list of commonly used passwords "
        "against many different accounts.",
        severity="high",
        url="https://attack.mitre.org/techniques/T1110/003/",
    ),
    MitreTechnique(
        id="T1078",
        name="Valid Accounts",
        tactic="Initial Access",
        description="Adversaries may obtain and abuse credentials of existing accounts to gain "
        "Initial Access, Persistence, Privilege Escalation, or Defense Evasion.",
        severity="high",
        url="https://attack.mitre.org/techniques/T1078/",
    ),
    MitreTechnique(
        id="T1190",
        name="Exploit Public-Facing Application",
        tactic="Initial Access",
        description="Adversaries may attempt to take advantage of a weakness in an "
        "Internet-facing computer or program using software, data, or commands.",
        severity="critical",
        url="https://attack.mitre.org/techniques/T1190/",
    ),
    MitreTechnique(
        id="T1003",
        name="OS Credential Dumping",
        tactic="Credential Access",
        description="Adversaries may attempt to dump credentials to obtain account login "
        "and credential material.",
        severity="critical",
        url="https://attack.mitre.org/techniques/T1003/",
    ),
    MitreTechnique(
        id="T1498",
        name="Network Denial of Service",
        tactic="Impact",
        description="Adversaries may perform Network Denial of Service (DoS) attacks to "
        "degrade or block the availability of targeted resources.",
        severity="critical",
        url="https://attack.mitre.org/techniques/T1498/",
    ),
    MitreTechnique(
        id="T1071",
        name="Application Layer Protocol",
        tactic="Command and Control",
        description="Adversaries may communicate using application layer protocols to avoid "
        "detection/network filtering.",
        severity="medium",
        url="https://attack.mitre.org/techniques/T1071/",
    ),
    MitreTechnique(
        id="T1046",
        name="Network Service Discovery",
        tactic="Discovery",
        description="Adversaries may attempt to get a listing of services running on remote "
        "hosts and local network infrastructure devices.",
        severity="medium",
        url="https://attack.mitre.org/techniques/T1046/",
    ),
    MitreTechnique(
        id="T1595",
        name="Active Scanning",
        tactic="Reconnaissance",
        description="Adversaries may execute active reconnaissance scans to gather information "
        "that can be used during targeting.",
        severity="medium",
        url="https://attack.mitre.org/techniques/T1595/",
    ),
    MitreTechnique(
        id="T1059",
        name="Command and Scripting Interpreter",
        tactic="Execution",
        description="Adversaries may abuse command and script interpreters to execute "
        "commands, scripts, or binaries.",
        severity="high",
        url="https://attack.mitre.org/techniques/T1059/",
    ),
    MitreTechnique(
        id="T1548",
        name="Abuse Elevation Control Mechanism",
        tactic="Privilege Escalation",
        description="Adversaries may circumvent mechanisms designed to control elevate "
        "privileges to gain higher-level permissions.",
        severity="critical",
        url="https://attack.mitre.org/techniques/T1548/",
    ),
    MitreTechnique(
        id="T1040",
        name="Network Sniffing",
        tactic="Credential Access",
        description="Adversaries may sniff network traffic to capture information about an "
        "environment, including authentication material.",
        severity="high",
        url="https://attack.mitre.org/techniques/T1040/",
    ),
    MitreTechnique(
        id="T1562",
        name="Impair Defenses",
        tactic="Defense Evasion",
        description="Adversaries may maliciously modify components of a victim environment "
        "to hinder or disable defensive mechanisms.",
        severity="critical",
        url="https://attack.mitre.org/techniques/T1562/",
    ),
    MitreTechnique(
        id="T1133",
        name="External Remote Services",
        tactic="Initial Access",
        description="Adversaries may leverage external-facing remote services to initially "
        "access and/or persist within a network.",
        severity="high",
        url="https://attack.mitre.org/techniques/T1133/",
    ),
]

MITRE_TECHNIQUES: Dict[str, MitreTechnique] = {t.id: t for t in _TECHNIQUES}


def get_technique(technique_id: str) -> Optional[MitreTechnique]:
    """Look up a technique by id; None if it is not in the table."""
    return MITRE_TECHNIQUES.get(technique_id)


def list_techniques() -> List[MitreTechnique]:
    """All reference techniques in table order."""
    return list(_TECHNIQUES)
