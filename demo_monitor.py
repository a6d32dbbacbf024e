#!/usr/bin/env python3
"""
PostureAI - Live Monitor
Scores posture from the webcam (or a recorded keypoint file) and logs
snapshots, alerts and the weekly summary.

Usage:
    python demo_monitor.py                       # webcam 0
    python demo_monitor.py --replay session.json # recorded keypoints
    python demo_monitor.py --uid alice --store data/posture_sessions.jsonl

Stop with Ctrl+C.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from Posture_Engine.config import load_config
from Posture_Engine.core.posture_classifier import Snapshot
from Posture_Engine.detectors.keypoint_source import ReplayKeypointSource
from Posture_Engine.pipeline.monitor import MonitorState, PostureMonitor
from Posture_Engine.storage.analytics import AnalyticsClient, AnalyticsService
from Posture_Engine.storage.session_store import JsonLinesSessionStore

logger = logging.getLogger("posture_monitor")


def parse_args():
    parser = argparse.ArgumentParser(description="PostureAI live monitor")
    parser.add_argument("--camera", "-c", type=int, default=0, help="Camera ID")
    parser.add_argument("--width", "-w", type=int, default=640, help="Width")
    parser.add_argument("--height", "-H", type=int, default=480, help="Height")
    parser.add_argument("--replay", type=Path, help="Replay keypoints from a JSON recording instead of the camera")
    parser.add_argument("--replay-delay", type=float, default=0.1, help="Seconds between replayed frames")
    parser.add_argument("--config", type=Path, help="JSON config overrides")
    parser.add_argument("--uid", default="local", help="User id for persisted scores")
    parser.add_argument("--store", type=Path, default=Path("data") / "posture_sessions.jsonl",
                        help="JSON-lines session store")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args()


def open_source(args):
    if args.replay:
        return ReplayKeypointSource.from_json(args.replay, delay_s=args.replay_delay)
    from Posture_Engine.detectors.pose_detector import MediaPipeKeypointSource
    return MediaPipeKeypointSource(args.camera, args.width, args.height)


def log_snapshot(snapshot: Snapshot):
    m = snapshot.metrics
    line = (f"{snapshot.status.value:<7} score={snapshot.score:3d} "
            f"spine={m.spine_angle:5.1f} neck={m.neck_tilt:5.1f} shoulder={m.shoulder_tilt:5.1f}")
    if snapshot.wellness is not None:
        w = snapshot.wellness
        line += f" focus={w.focus_score:.0f} stress={w.stress_level:.0f} blinks/min={w.blink_rate}"
    if snapshot.issues:
        line += f" | {snapshot.issues[0]}"
    logger.info(line)


async def run(args):
    config = load_config(args.config)
    store = JsonLinesSessionStore(args.store)
    analytics = AnalyticsClient(AnalyticsService(store), args.uid,
                                timeout_s=config.pipeline.ANALYTICS_TIMEOUT_S)
    monitor = PostureMonitor(open_source(args), config, uid=args.uid, store=store, analytics=analytics)
    monitor.add_listener(log_snapshot)

    await monitor.start()
    try:
        while monitor.state == MonitorState.RUNNING:
            await asyncio.sleep(1.0)
            if monitor.break_due:
                logger.info("Time to stretch: stand up and roll your shoulders")
                monitor.acknowledge_break()
    finally:
        await monitor.stop()
        monitor.persist_latest()
        await monitor.drain_writes()

    if monitor.state == MonitorState.STOPPED:
        logger.warning("Capture stopped: %s", monitor.last_error)
    summary = await analytics.refresh()
    logger.info("Weekly average: %s (%d samples)", summary.week_average, summary.total_samples)
    for day in summary.daily:
        logger.info("  %s  %s  (%d)", day.date, day.score if day.score is not None else "--", day.count)


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Goodbye")


if __name__ == "__main__":
    main()
