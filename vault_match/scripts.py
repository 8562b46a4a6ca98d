# vault_match/scripts.py
"""Fixed cutscene scripts, in play order."""

from __future__ import annotations

from .dialogue import DialogueLine, Speaker

U, S, N = Speaker.USER, Speaker.SIDEKICK, Speaker.NARRATOR
ASLEEP, AWAKE = Speaker.ENEMY_ASLEEP, Speaker.ENEMY_AWAKE


def _script(*pairs):
    return tuple(DialogueLine(speaker, text) for speaker, text in pairs)


VAULT_INTRO = _script(
    (N, "You and Sidekick wander into an abandoned BANK, in search of Sidekick's missing "
        "memory chip, following a lead on his radar."),
    (N, "Upon arrival, Sidekick's radar homes in on a vault..."),
    (S, "That's it. According to my radar, that is where my memory chip is."),
    (U, "Oh boy, how will we get past that evil looking robot though."),
    (ASLEEP, "ZzZzZzz"),
    (S, "I think that robot may be asleep. Should we make a move now?"),
    (U, "Looks like we have no choice. Let's try to hack the vault without getting caught. "
        "Come give me a hand!"),
    (S, "I will try my best, but my accuracy is low without my memory chip. I might "
        "hallucinate at times. Be careful, as the alarm will go off if you fail too many times."),
    (N, "Click to begin..."),
)

VAULT_SUCCESS = _script(
    (N, "The last pair clicks into place and the vault door swings open."),
    (S, "My memory chip! It's really here!"),
    (ASLEEP, "zzz... zzzZZZ..."),
    (U, "Grab it and let's go before that thing wakes up."),
)

VAULT_FAILURE = _script(
    (ASLEEP, "zzzZZZzz..."),
    (N, "You run out of tries, vault intruder alert was triggered"),
    (AWAKE, "Huh, What's going on?!?!?"),
    (U, "Oh no, lets get out of here"),
    (S, "Aye Aye Captain"),
    (AWAKE, "STOP RUNNING, YOU CAN'T GET AWAY FROM ME THAT EASILY!!"),
    (U, "AAAAAAAAAAA"),
)

TRAINING_INTRO = _script(
    (N, "Following your successful heist of Sidekick's memory chip from the bank, you have "
        "arrived at a factory to mount it into Sidekick's hardware."),
    (U, "Alright, we've got the chip. Fingers crossed this works..."),
    (S, "You got this! Hold on... I am picking up some activity outside the factory - OH NO! "
        "The enemy has tracked us! You need to hurry. I have triggered the locks, but I am not "
        "sure how long that will hold them off! I can find us a path out once you are done."),
    (U, "Got it! I'll mount the chip ASAP!"),
    (U, "Done. Did it work?"),
    (S, "I think it di-"),
    (S, "Wait, something is wrong... My system is glitching out. It looks like the memory chip "
        "somehow ruined my calibration. Quick, you need to access my terminal and recalibrate "
        "right now!"),
    (U, "Hang in there! I'll do my best!"),
    (N, "You will be given a series of scenes. For each scene, select the 5 words that best "
        "match it. You need an accuracy score of atleast 70% to pass. The current accuracy is "
        "displayed at the top of the terminal."),
    (N, "Click to begin..."),
)

TRAINING_SUCCESS = _script(
    (U, "I think that's it. Did it work?"),
    (S, "I think it did. I can feel this new power in my wires. Let me scan the area and find "
        "us an escape route."),
    (S, "Follow me!"),
)

TRAINING_FAILURE = _script(
    (U, "Oh no! I messed it up!"),
    (S, "My calibration is fried, I don't know what to do!"),
    (U, "Let's make a run for it, follow me!"),
)
