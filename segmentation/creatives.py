"""Notification copy per segment and the random variant picker."""

from __future__ import annotations

import random
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import SegmentKey

BANNER_BASE = "https://guardianshot.blr1.cdn.digitaloceanspaces.com/selfie%20notification%20banner"


class Creative(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=120)
    body: str = Field(min_length=1, max_length=400)
    image: Optional[str] = None


class Variant(Creative):
    # inclusive bounds on the catalog's tier metric, None = open
    min_value: Optional[int] = None
    max_value: Optional[int] = None

    def matches(self, value: Optional[int]) -> bool:
        if value is None:
            return True
        if self.min_value is not None and value < self.min_value:
            return False
        if self.max_value is not None and value > self.max_value:
            return False
        return True


class Catalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    variants: List[Variant] = Field(min_length=1)
    tier_metric: Optional[str] = None

    def candidates(self, metrics: Mapping[str, Any]) -> List[Variant]:
        value = metrics.get(self.tier_metric) if self.tier_metric else None
        return [v for v in self.variants if v.matches(value)]


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render(variant: Variant, metrics: Mapping[str, Any]) -> Creative:
    values = _KeepMissing(metrics)
    return Creative(
        title=variant.title.format_map(values),
        body=variant.body.format_map(values),
        image=variant.image or None,
    )


def _v(title: str, body: str, image: Optional[str] = None, lo: Optional[int] = None, hi: Optional[int] = None) -> Variant:
    return Variant(title=title, body=body, image=image, min_value=lo, max_value=hi)


CATALOG: Dict[SegmentKey, Catalog] = {
    SegmentKey.brand_new: Catalog(variants=[
        _v("🎉 Welcome! Try This First", "Start with AI Enhancer - see the magic", f"{BANNER_BASE}/AI%20Enhancer.png"),
        _v("✨ Your First Edit Was Great!", "Try Face Swap next - it's trending", f"{BANNER_BASE}/Face%20Swap.png"),
        _v("😲 Remove Unwanted Objects", "Clean up photos in one tap", f"{BANNER_BASE}/Object%20Remover.png"),
        _v("💄 Try Makeup Transfer", "Transform your look instantly", f"{BANNER_BASE}/Makeup.png"),
        _v("📸 Explore Trending Filters", "Discover your favorite style"),
        _v("🌟 You're Off to a Great Start!", "Try more AI features and unlock your creativity"),
    ]),
    SegmentKey.ai_edit_reminder: Catalog(variants=[
        _v(
            "Continue Your Creative Journey! 🎨",
            "You've been creating amazing edits! Keep up the great work and explore more features!",
        ),
    ]),
    SegmentKey.core_active: Catalog(variants=[
        _v(
            "Keep Your Streak Going! 🔥",
            "Amazing work! You've completed {edits_last_7_days} edits. Keep up the great streak! 🎨",
        ),
    ]),
    SegmentKey.recently_active: Catalog(tier_metric="days_since_last_edit", variants=[
        _v("We Miss You! 🎨", "It's been a couple of days! Come back and create something new.", hi=3),
        _v("We Miss You! 🎨", "Your creative journey is waiting! Open the app and continue editing.", lo=4, hi=5),
        _v("We Miss You! 🎨", "Don't let your creativity fade! Come back and explore new features.", lo=6),
    ]),
    SegmentKey.inactive: Catalog(tier_metric="days_since_last_edit", variants=[
        _v("New Features Await You! ✨", "We've added exciting new AI features! Come back and discover what's new.", hi=14),
        _v(
            "New Features Await You! ✨",
            "Missed you! Check out our latest AI-powered editing tools and create something amazing.",
            lo=15, hi=24,
        ),
        _v(
            "New Features Await You! ✨",
            "We've been working on something special! Explore our new AI features and reignite your creativity.",
            lo=25,
        ),
    ]),
    SegmentKey.churned: Catalog(tier_metric="days_since_last_edit", variants=[
        _v(
            "Major AI Upgrade! 🚀",
            "We've completely upgraded our AI engine! Experience revolutionary new editing capabilities and trending effects.",
            hi=59,
        ),
        _v(
            "Major AI Upgrade! 🚀",
            "Big news! Our AI engine has been completely rebuilt with cutting-edge technology. See what's new!",
            lo=60, hi=89,
        ),
        _v(
            "Major AI Upgrade! 🚀",
            "We've transformed the app with a powerful new AI engine and trending effects! Come back and see the difference.",
            lo=90,
        ),
    ]),
    SegmentKey.viral: Catalog(tier_metric="shared_edits", variants=[
        _v(
            "Creator Features Await! 🎨",
            "Your shares inspire others! Unlock exclusive creator tools and be among the first to try new features.",
            hi=2,
        ),
        _v(
            "VIP Creator Access! ⭐",
            "You're a top creator! Get exclusive early access to premium creator features and trending effects.",
            lo=3,
        ),
    ]),
    SegmentKey.saved_edit: Catalog(variants=[
        _v(
            "Unlock Pro Features! ✨",
            "You've saved {saved_edits} amazing edits! Upgrade to Pro for HD quality exports and premium features.",
        ),
    ]),
    SegmentKey.style_opened: Catalog(variants=[
        _v(
            "New Styles Dropped! 🎨",
            "You love exploring styles! Check out today's new style drops and discover fresh filters.",
        ),
    ]),
    SegmentKey.streak_broken: Catalog(variants=[
        _v(
            "Don't Break Your Streak! 🔥",
            "You've edited for {streak_days} days straight! Keep your streak alive - create something amazing today!",
        ),
    ]),
    SegmentKey.almost_subscriber: Catalog(variants=[
        _v(
            "Unlock Premium Features! ✨",
            "You were exploring premium features! Start your free trial and unlock unlimited creative possibilities!",
        ),
        _v(
            "Join Thousands of Happy Creators! 🎨",
            "See what premium users are creating! Start your subscription and access exclusive features today!",
        ),
        _v(
            "Don't Miss Out on Premium! 💎",
            "You've shown interest in premium features. Try it now with our special offer and transform your creativity!",
        ),
    ]),
    SegmentKey.paywall_dismissed: Catalog(variants=[
        _v(
            "Still Thinking About Premium? 💭",
            "We noticed you checked out our premium features. Take your time, but remember - unlimited creativity is just a tap away!",
        ),
        _v(
            "Premium Features Await You! ✨",
            "You explored premium features recently. When you're ready, we're here to help you unlock your full creative potential!",
        ),
        _v(
            "No Pressure, Just Possibilities! 🎨",
            "Premium features are always available when you need them. Explore at your own pace and create something amazing!",
        ),
    ]),
}


class CreativeSelector:
    def __init__(self, catalog: Optional[Mapping[SegmentKey, Catalog]] = None, rng: Optional[random.Random] = None):
        self.catalog = dict(catalog if catalog is not None else CATALOG)
        self.rng = rng or random.Random()

    def pick(self, segment: SegmentKey, metrics: Optional[Mapping[str, Any]] = None) -> Creative:
        metrics = metrics or {}
        catalog = self.catalog.get(segment)
        if catalog is None:
            raise KeyError(f"no creative catalog for segment {segment.value}")
        candidates = catalog.candidates(metrics) or catalog.variants
        return render(self.rng.choice(candidates), metrics)
