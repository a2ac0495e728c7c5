"""
Basic Watch Example

Watch a couple of videos with the default configuration and print the outcomes.
"""
import asyncio

from viewpilot.core.engine import WatchDispatcher
from viewpilot.core.models.config import Config
from viewpilot.logging import configure_logging
from viewpilot.plugins.browsers.playwright_plugin import PlaywrightPageFactory
from viewpilot.plugins.output.jsonl_writer import JsonLinesWriter


async def main():
    config = Config()
    config.watch.watch_time_percentage = 25.0
    config.engine.headless = False
    configure_logging("INFO")

    tasks = [
        config.build_task("https://www.youtube.com/watch?v=dQw4w9WgXcQ"),
        config.build_task("https://rumble.com/v4abcde-some-video-title.html"),
    ]

    async with JsonLinesWriter() as writer:
        await writer.initialize(config.output.data.path)

        async with PlaywrightPageFactory(config) as factory:
            summary = await WatchDispatcher(config, factory, writer).run(tasks)

    for report in summary.reports:
        outcome = report.outcome
        print(f"{report.task.video_id}: {outcome.status.value if outcome else 'crashed'}")
        if outcome:
            print(f"  watched {outcome.watch_time_actual_sec:.0f}s of {outcome.duration_found_sec}s")


if __name__ == "__main__":
    asyncio.run(main())
